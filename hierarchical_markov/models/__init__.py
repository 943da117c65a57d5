"""
Auxiliary linear models: a support vector classifier and a recursive
least-squares regressor.
"""

from .svm import LinearSVC
from .rec_lin_reg import RecLinReg

__all__ = ['LinearSVC', 'RecLinReg']
