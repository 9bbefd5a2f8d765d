"""State layer.

Holds everything the engine knows about the vehicle track and the map
camera. Only the engine mutates these objects, one callback at a time.
"""
