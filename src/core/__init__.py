"""Core domain package for photoscope.

Core contains the credential vault, the connection supervisor, channel
provisioning and the forwarding pipeline without any Telethon or Tesseract
specific code, so every piece can be driven by fakes.
"""
