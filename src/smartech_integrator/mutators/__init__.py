"""
Idempotent text mutators.

Every public ``ensure_*`` function takes source text plus a description of
the construct to add and returns either the input unchanged (the construct
is already present, or no anchor could be found) or new text with the
construct inserted. Callers compare input and output to decide whether a
change is needed.
"""
