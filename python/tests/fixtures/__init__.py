"""
Pytest fixtures for linewatch tests.

Fixtures are organized by test category:
- watcher.py: FileLinesWatcher fixtures and the CallbackRecorder helper
"""
