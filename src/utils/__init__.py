"""Configuration, credential and logging helpers."""
