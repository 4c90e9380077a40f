"""
Shared building blocks for the game modules: balance constants, formulas,
settings, domain exceptions and the service/repository base classes.
"""
