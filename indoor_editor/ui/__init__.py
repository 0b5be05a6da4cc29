"""
PyQt5 desktop host for the floor-plan editor.

Modules here import PyQt5 on load; import them explicitly, for example
``from indoor_editor.ui.main_window import FloorEditorWindow``.
"""
