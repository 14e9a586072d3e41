"""External service collaborators: storage, OCR, image hosting and language models."""
