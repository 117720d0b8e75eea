"""Versioned file metadata service with conflict resolution."""
