"""Companies, teams, workers and the holiday calendar."""
