"""
Style tokens shared by the editor's widgets (dark theme).
"""

# Actions
PRIMARY_ACTION = "#4CAF50"
PRIMARY_ACTION_HOVER = "#45a049"
DANGER_COLOR = "#f44336"
DANGER_HOVER = "#da190b"

# Tool bar state
SELECTED_STATE = "#2196F3"

# Surfaces
BG_DARKEST = "#1e1e1e"
BG_DARK = "#2d2d2d"
BG_MEDIUM = "#353535"
BG_LIGHT = "#404040"

# Text
TEXT_PRIMARY = "#e0e0e0"
TEXT_SECONDARY = "#c0c0c0"
TEXT_ERROR = "#ff8888"

BORDER_MEDIUM = "#555555"
BORDER_RADIUS_MD = "4px"

SPACING_SM = 8
SPACING_MD = 12

# Floor view background and grid (scene units)
CANVAS_BACKGROUND = "#1e1e1e"
CANVAS_GRID = "#2e2e2e"
CANVAS_GRID_MAJOR = "#3a3a3a"
GRID_STEP = 10.0
