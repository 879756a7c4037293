"""
VehiQuest: vehicle-rental marketplace backend.
"""
