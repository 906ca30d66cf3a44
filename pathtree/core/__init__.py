"""Core domain: tree engine, database base classes and settings."""
