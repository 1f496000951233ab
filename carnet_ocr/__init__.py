"""Carnet OCR: identity card field extraction.

Turns photographs of both faces of an identity card into a structured,
validated record (ID number, names, birth data, address, parents, serial)
using OpenCV preprocessing, Tesseract recognition and rule-based
postprocessing.
"""

__version__ = "1.1.0"
