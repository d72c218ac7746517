"""ridevoice: wake-phrase activated voice commands for a ride app."""
