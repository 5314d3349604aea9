"""
BenefitMatch eligibility engine

Evaluates declarative eligibility rules against a person's self-reported
profile and groups assistance programs into confidence tiers.
"""

__version__ = "1.0.0"
__description__ = "Rule evaluation and eligibility classification engine"
