"""Notification routing and delivery service."""
