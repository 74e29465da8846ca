"""
Wardrobe Engine

Garment upload pipeline, wardrobe queries and fashion advice.
"""

from src.engines.wardrobe.models import Prenda
from src.engines.wardrobe.parsing import DetectionResult, extract_detected_garments

__all__ = ["Prenda", "DetectionResult", "extract_detected_garments"]
