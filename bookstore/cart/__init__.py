"""Session-scoped shopping cart and checkout endpoints."""
