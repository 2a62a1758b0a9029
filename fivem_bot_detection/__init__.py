"""
FiveM Bot Detection

Classifies players connected to a FiveM server as automated or genuine:
- Server context analysis (population-adaptive thresholds)
- Six-layer per-player validation
- Steam identity signal scoring
- Ultra-conservative decision aggregation

Zero false positives beats catching every bot.
"""

__version__ = "3.0.0"
