"""
Patch Studio - Main Entry Point

This module provides the main entry point for the application.
"""

import logging
import sys


def main() -> int:
    """
    Main entry point for Patch Studio.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    # Ensure we're running Python 3.11+
    if sys.version_info < (3, 11):
        print("Error: Patch Studio requires Python 3.11 or later")
        return 1

    from patch_studio.core.project import load_settings
    from patch_studio.host.editor import Editor
    from patch_studio.nodes import register_all_nodes

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Import Qt here to avoid import overhead if just checking version
    from PySide6.QtWidgets import QApplication
    from PySide6.QtCore import Qt

    from patch_studio.ui.main_window import MainWindow

    app = QApplication(sys.argv)
    app.setApplicationName("Patch Studio")
    app.setApplicationVersion("0.1.0")
    app.setOrganizationName("Patch Studio")

    # Enable high DPI scaling
    app.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    editor = Editor(settings, register_all_nodes())

    window = MainWindow(editor)
    window.show()

    # Run event loop
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
