"""
Esports season simulator: players, teams, round-by-round matches,
tournaments, contracts and a transfer market advanced day by day.
"""
