"""
Indoor floor-plan authoring engine.

Interactive editing of indoor-navigation floor plans: rooms and walls,
positioning beacons, and the routable node graph with multi-floor
elevator/stairs connectors.
"""

__version__ = "0.3.0"
