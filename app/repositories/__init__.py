"""
Repository package for data access layers.

- media: library reads (detail, grouped dashboard, title set) and the
  flag-only writers (watched toggles, delete).
"""
