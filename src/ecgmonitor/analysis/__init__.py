"""Signal analysis utilities (heart rate and display filtering).

Modules here operate on beat events and NumPy arrays only, so they can be
used from the playback controller, command-line tools, or tests alike.
"""
