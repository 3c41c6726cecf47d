#!/usr/bin/env python3
"""
Factor operator algebra package

Message operators for equality, replicate, gather, gate and matrix
multiply factors under EP, VMP and Gibbs, with an EP driver for
observed-equality networks
"""

from .errors import (
    FactorOpsError,
    ShapeMismatchError,
    ImproperMessageError,
    DegenerateRatioError,
    AllZeroError,
    NotSupportedError,
    BufferStateError
)
from .settings import OperatorSettings, settings, override_settings
from .arguments import Constant, Message, classify, classify_all
from .buffers import Buffer, BufferState
from .outcomes import Ok, DegenerateRatio, AllZero, try_ratio, unwrap
from .metadata import factor_operator, operator_info, lookup, operators_for, should_skip
from .evidence import EvidenceAccumulator
from .distributions import Bernoulli, Discrete, Gaussian, GaussianArray, StringDistribution
from .operators import (
    BooleanAreEqualOp,
    BooleanNotOp,
    DiscreteAreEqualOp,
    StringsAreEqualOp,
    ReplicateGibbsOp,
    ReplicateOp,
    ReplicateOpDivide,
    ReplicateOpNoDivide,
    UsesEqualDefOp,
    GetItemOp,
    GetItemsOp,
    GetItemsPartialOp,
    ExitingVariableOp,
    GateEnterPartialOp,
    GateExitOp,
    GateExitTwoOp,
    ReplicateExitingOp,
    MatrixMultiplyOp
)
from .inference import EqualityNetworkEP, SweepSettings

__all__ = [
    'FactorOpsError',
    'ShapeMismatchError',
    'ImproperMessageError',
    'DegenerateRatioError',
    'AllZeroError',
    'NotSupportedError',
    'BufferStateError',
    'OperatorSettings',
    'settings',
    'override_settings',
    'Constant',
    'Message',
    'classify',
    'classify_all',
    'Buffer',
    'BufferState',
    'Ok',
    'DegenerateRatio',
    'AllZero',
    'try_ratio',
    'unwrap',
    'factor_operator',
    'operator_info',
    'lookup',
    'operators_for',
    'should_skip',
    'EvidenceAccumulator',
    'Bernoulli',
    'Discrete',
    'Gaussian',
    'GaussianArray',
    'StringDistribution',
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
    'ExitingVariableOp',
    'GateEnterPartialOp',
    'GateExitOp',
    'GateExitTwoOp',
    'ReplicateExitingOp',
    'MatrixMultiplyOp',
    'EqualityNetworkEP',
    'SweepSettings'
]
