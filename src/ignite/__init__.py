"""
Ignite - client resiliency layer, workbook rules and AI coaching service
for the Launch/Ignite coaching platform.
"""

__version__ = "0.4.0"
