"""Test helpers for the CIPulse reporter."""
