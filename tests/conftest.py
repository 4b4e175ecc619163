"""Pytest bootstrap configuration.

Point the settings at a throwaway local storage directory before any
module that reads application settings is imported.
"""
import os
import tempfile

os.environ.setdefault("STORAGE__TYPE", "local")
os.environ.setdefault("STORAGE__LOCAL_BASE_PATH", tempfile.mkdtemp(prefix="upload-relay-tests-"))
