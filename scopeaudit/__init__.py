"""ScopeAudit: room-aware quantity deviation engine.

Reconciles estimate line items, expert-report directives and measured
room dimensions into severity-ranked, dollar-quantified deviations.
"""

__version__ = "0.1.0"
