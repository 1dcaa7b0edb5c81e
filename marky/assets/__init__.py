"""
Bundled Assets
==============

Read-only resources shipped with the package: built-in themes and the
client-side script embedded into every rendered page.
"""
