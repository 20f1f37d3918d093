"""JSON schemas shipped with deckprofile."""
