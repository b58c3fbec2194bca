"""Standalone command-line client for the SonarQube Web API."""

__version__ = "0.1.0"
