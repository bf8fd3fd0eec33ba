"""Export format tables and canonical frame schemas."""
