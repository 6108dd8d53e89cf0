"""Entry point de desarrollo.

Permite ejecutar la CLI con `python src/main.py ...` sin instalar el
paquete; instalado, el script `awb` apunta a `cli.main:run`.
"""

from __future__ import annotations

import sys

# cp1252 en terminales Windows rompe los paneles de Rich.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run

if __name__ == "__main__":
    run()
