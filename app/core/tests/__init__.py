"""Tests for core infrastructure (service layer, exceptions, health check)."""
