"""
Roomstager: composite plants and photo-tile arrangements into room photos
with a Gemini image model.
"""

__version__ = "1.0.0"
