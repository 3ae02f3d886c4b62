# -*- coding: utf-8 -*-
"""A collection of useful code abstractions.

All modules that are not specifically associated with any one component of the
code, such as the exception hierarchy and the configuration layer, are located
here.
"""
from typing import Sequence, Union

import numpy as np
from torch import Tensor

# Types
vector_like = Union[Tensor, np.ndarray, Sequence[float]]
