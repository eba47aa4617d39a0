"""Tests for ytls."""
