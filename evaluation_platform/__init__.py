"""
Accelerator Evaluation Platform

Scoring and selection core for accelerator application rounds and demo days:
weighted evaluator scoring, quorum and cutoff rules, and the submission
lifecycle from SUBMITTED through ACCEPTED / REJECTED.
"""

__version__ = "1.0.0"
