"""Permission catalogue (menu / action / input codes)."""
