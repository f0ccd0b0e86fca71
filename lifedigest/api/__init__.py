"""HTTP surface: health, digest preview and on-demand runs."""
