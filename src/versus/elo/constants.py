"""
ELO rating system constants.

K factor: Controls rating volatility (how much ratings change per vote)
  - 32 separates a clearly preferred item from a disliked one within
    roughly ten votes
  - A single upset moves a pair by at most K points, so an ordering built
    over many sessions survives one surprising vote

S factor: Controls the spread (how rating differences translate to win probability)
  - 400 is the standard chess value: a 400 point lead means 10:1 odds
"""

# Step size applied to (actual - expected) after each vote
DEFAULT_K_FACTOR = 32.0

# Rating difference giving 10:1 expected odds
DEFAULT_SCALE = 400.0

# Starting rating for new items. Items still sitting at this value have
# never been compared.
DEFAULT_ELO = 1200.0
