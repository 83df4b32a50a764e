"""File upload presigning and file records."""
