"""Configuration package; import `settings` from `chandir.core.config.settings`."""
