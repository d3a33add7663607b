"""Configuration, error types and logging shared by the plugin modules."""
