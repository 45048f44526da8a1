"""Recovery tracker core: streaks, levels, achievements and the points ledger"""
