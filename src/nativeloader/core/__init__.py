"""Core models, errors and logging shared by nativeloader modules."""
