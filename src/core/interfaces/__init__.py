"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan los adaptadores concretos.
- Permite invertir dependencias: los handlers dependen de abstracciones.
"""
