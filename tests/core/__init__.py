"""Tests for the ytls core."""
