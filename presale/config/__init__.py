"""Sale configuration: settings and fixed business constants."""
