"""
stagewise.plans — ready-made stage sequences.

A plan module exposes ``build_stages()`` returning an ordered list of
stages and, optionally, ``default_constants()`` returning the constant
table used when no constants file is given.
"""
