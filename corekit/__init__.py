"""Core application services: logging, services, i18n, resources, events, UI ids and plugins."""

__version__ = "1.0.0"