"""Code that runs inside the target context.

Modules here are read as source text and shipped into the target; they are
importable on the controlling side only so they can be tested directly.
"""
