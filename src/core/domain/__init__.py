"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras (Pydantic v2 / dataclasses) y el
  codec de anchors.
- El dominio no conoce HTTP, CLI ni SDKs: solo conceptos del problema.
"""
