"""Data model, persistence codec and stores."""
