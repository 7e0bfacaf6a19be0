"""
PySide6 editor GUI.
"""
