"""Game systems of the reward engine."""
