"""Anki deck importer.

Downloads shared Anki decks and migrates them into Firestore and
Firebase Storage.
"""

__version__ = "0.1.0"
