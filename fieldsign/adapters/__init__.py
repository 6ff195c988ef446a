"""External adapters for the FieldSign signature system.

This package contains all external dependencies (SQLite, pypdf, reportlab,
Pillow, httpx) and provides implementations of the core port interfaces.

Adapter Organization:

- store/: Text-only key/value persistence (SQLite)
- pdf/: PDF annotation engine (pypdf + reportlab + Pillow)
- sync/: Remote sync transport (HTTP)
- connectivity/: Online/offline detection (HTTP probe)
- capture/: Capture surface encoding (Pillow)
- cli/: Command-line interface commands
"""
