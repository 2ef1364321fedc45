"""Utility helpers for text, price frames, statements and risk math."""
