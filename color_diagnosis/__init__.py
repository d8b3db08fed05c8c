"""Gemini-powered personal color diagnosis service."""
