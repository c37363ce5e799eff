from __future__ import annotations

from typing import Literal, Sequence, Union

import numpy as np
import pandas as pd

DatasetLike = Union[np.ndarray, pd.DataFrame]

# Values stored in configs and in the open parameter bags of a TrainedState.
ScalarValue = Union[int, float, str, bool, None]
ParamValue = Union[ScalarValue, np.ndarray, Sequence[float]]

VariantKind = Literal["linear", "autoencoder", "parameterized"]
ReturnType = Literal["numpy", "pandas"]
Scaling = Literal["none", "standardize"]
NoiseKind = Literal["gaussian", "masking"]
VarianceProxy = Literal["reconstruction", "uniform"]
