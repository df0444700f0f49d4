"""Quality template configuration and validation.

Composable coffee-grading rules (screen sizes, defects, green and roast
aspect, taints/faults, cupping attributes, micro-regions) with pure
validators and preset catalogues.

Deterministic -- no I/O.
"""
