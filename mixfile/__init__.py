"""
Mixfile - Source Package

Main modules:
- data: Mixfile records, the Mixture tree, collections and units
- normalization: Concentration inference from absolute quantities
- minchi: MInChI notation, hash keys and InChI providers
- utils: Configuration management
"""

__version__ = "1.0.0"
