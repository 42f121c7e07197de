"""Submission and reveal workflows."""
