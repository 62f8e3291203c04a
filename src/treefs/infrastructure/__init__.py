"""Logging and configuration shared by every treefs module."""
