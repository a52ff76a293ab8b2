import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from health_portfolio import LogLinearFrequency, PopulationProportions


@pytest.fixture
def motor_data():
    """Small synthetic frame with the freMTPL2freq layout."""
    n = 20000
    rng = np.random.default_rng(7)

    exposure = rng.uniform(0.05, 1.2, size=n)
    claims = rng.poisson(0.15 * np.minimum(exposure, 1.0))
    claims[:3] = 6  # a few implausible counts to exercise the cap

    return pd.DataFrame(
        {
            "IDpol": np.arange(1, n + 1),
            "ClaimNb": claims,
            "Exposure": exposure,
            "Area": rng.choice(list("ABCDEF"), size=n),
            "VehPower": rng.integers(4, 13, size=n),
            "VehAge": rng.integers(0, 21, size=n),
            "DrivAge": rng.integers(18, 91, size=n),
            "BonusMalus": rng.integers(50, 231, size=n),
            "VehBrand": rng.choice(["B1", "B2", "B12"], size=n),
            "VehGas": rng.choice(["Regular", "Diesel"], size=n),
            "Density": rng.integers(1, 27001, size=n),
            "Region": rng.choice(["R11", "R24", "R82"], size=n),
        }
    )


@pytest.fixture
def true_model():
    return LogLinearFrequency.closed_form()


@pytest.fixture
def population():
    return PopulationProportions()
