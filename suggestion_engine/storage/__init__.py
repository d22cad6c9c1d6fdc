"""Data models, cache and quota stores."""
