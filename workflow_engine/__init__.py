"""Workflow automation engine for warehouse document workflows."""
