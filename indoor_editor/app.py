"""
Desktop application entry point.

Loads ~/.config/indoor_editor/settings.json, connects to the floor-plan
server and opens the editor window. ``INDOOR_EDITOR_API_URL`` and
``INDOOR_EDITOR_API_TOKEN`` override the configured server.
"""

import logging
import os
import sys

# Disable Qt accessibility before Qt loads (crashes in PyQt5 on macOS)
os.environ.setdefault('QT_ACCESSIBILITY', '0')
os.environ.setdefault('QT_MAC_WANTS_LAYER', '1')

from PyQt5.QtWidgets import QApplication
from PyQt5.QtGui import QColor, QPalette
from PyQt5.QtCore import Qt

from indoor_editor.services.connectivity import ConnectivityService
from indoor_editor.services.rest import RestPersistence
from indoor_editor.settings import load_settings

logger = logging.getLogger(__name__)


def _dark_palette() -> QPalette:
    palette = QPalette()
    palette.setColor(QPalette.Window, QColor(43, 43, 43))
    palette.setColor(QPalette.WindowText, Qt.white)
    palette.setColor(QPalette.Base, QColor(35, 35, 35))
    palette.setColor(QPalette.AlternateBase, QColor(53, 53, 53))
    palette.setColor(QPalette.ToolTipBase, QColor(53, 53, 53))
    palette.setColor(QPalette.ToolTipText, QColor(224, 224, 224))
    palette.setColor(QPalette.Text, Qt.white)
    palette.setColor(QPalette.Button, QColor(53, 53, 53))
    palette.setColor(QPalette.ButtonText, Qt.white)
    palette.setColor(QPalette.BrightText, Qt.red)
    palette.setColor(QPalette.Link, QColor(59, 130, 246))
    palette.setColor(QPalette.Highlight, QColor(59, 130, 246))
    palette.setColor(QPalette.HighlightedText, Qt.black)
    return palette


def main() -> int:
    """Main application entry point."""
    settings = load_settings()
    settings.api_base_url = os.environ.get('INDOOR_EDITOR_API_URL', settings.api_base_url)
    settings.api_token = os.environ.get('INDOOR_EDITOR_API_TOKEN', settings.api_token)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    logger.info("Connecting to %s", settings.api_base_url)

    app = QApplication(sys.argv)
    app.setApplicationName("Indoor Floor Editor")
    app.setApplicationDisplayName("Indoor Floor Editor")
    app.setOrganizationName("IndoorEditor")
    app.setStyle("Fusion")
    app.setPalette(_dark_palette())

    from indoor_editor.ui.main_window import FloorEditorWindow

    persistence = RestPersistence.from_settings(settings)
    service = ConnectivityService(
        persistence, symmetric_connections=settings.server_symmetric_connections)
    window = FloorEditorWindow(service, settings)
    window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
