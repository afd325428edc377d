"""HTTP server driver for the meme pipeline."""
