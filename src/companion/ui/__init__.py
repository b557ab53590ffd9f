"""Event bus and the Qt host adapter (imported lazily by the app)."""
