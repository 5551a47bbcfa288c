"""Tests for the enphase_api package."""
