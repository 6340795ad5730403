"""Adapters between the core ports and Telethon, Tesseract and the console."""
