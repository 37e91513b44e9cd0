"""Output layer — renders ServiceResult for humans or machines."""
