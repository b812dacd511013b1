"""Tests for course-setup."""
