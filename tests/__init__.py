"""Test suite for travel-planner."""
