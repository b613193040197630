"""
Tabroom - Speaker scoring service for a debate league

Responsibilities:
- Speaker, debate and judge registry (draw import, admin edits)
- Judge assignment tracking
- Ranking ledger (one 1-6 ranking set per judge per debate)
- Round score calculation and cumulative speaker standings
"""
