"""
Services Layer

Pure bracket logic that:
- Accepts domain inputs (seed tables, match/player rows, a MatchStore handle)
- Returns domain outputs (generated brackets, outcomes, standings)
- Does NOT depend on HTTP request/response objects
- Mutates matches only through the progression engine and the seeding service
"""
