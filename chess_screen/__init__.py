"""
Chess Screenshot Recognition
============================

Turns a raw screenshot of an online chess interface into a FEN piece
placement using classical computer vision and template matching.

Architecture:
    1. Board Location     – square-cloud detection, large-square detection,
                            centred heuristic crop (in that order)
    2. Grid Normalisation – snap the rough region to an 8×8-divisible square
    3. Board Slicing      – 8×8 grid → 64 sub-images indexed [rank][file]
    4. Classification     – grayscale feature vectors matched against a
                            labelled template catalog (cosine similarity)
    5. FEN Encoding       – placement field, optionally the full six fields
"""

__version__ = "1.0.0"
