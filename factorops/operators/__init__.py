#!/usr/bin/env python3
"""
Operator families of the message-passing algebra
"""

from .equality import BooleanAreEqualOp, BooleanNotOp, DiscreteAreEqualOp, StringsAreEqualOp
from .replicate import (
    ReplicateGibbsOp,
    ReplicateOp,
    ReplicateOpDivide,
    ReplicateOpNoDivide,
    UsesEqualDefOp
)
from .gather import GetItemOp, GetItemsOp, GetItemsPartialOp, check_indices, slot_groups
from .gate import (
    ExitingVariableOp,
    GateEnterPartialOp,
    GateExitOp,
    GateExitTwoOp,
    ReplicateExitingOp
)
from .matrix_multiply import MatrixMultiplyOp

__all__ = [
    'BooleanAreEqualOp',
    'BooleanNotOp',
    'DiscreteAreEqualOp',
    'StringsAreEqualOp',
    'ReplicateGibbsOp',
    'ReplicateOp',
    'ReplicateOpDivide',
    'ReplicateOpNoDivide',
    'UsesEqualDefOp',
    'GetItemOp',
    'GetItemsOp',
    'GetItemsPartialOp',
    'check_indices',
    'slot_groups',
    'ExitingVariableOp',
    'GateEnterPartialOp',
    'GateExitOp',
    'GateExitTwoOp',
    'ReplicateExitingOp',
    'MatrixMultiplyOp'
]
