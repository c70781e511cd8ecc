"""
scoring/ - Folio decision engine

Modules:
    utils.py                    - Decimal utilities
    achievement_scorer.py       - Achievement scoring, ranking and top-N selection
    enhancement.py              - Impact-statement enhancement gatekeeper
    completeness_calculator.py  - Section coverage and fill strategy
"""
