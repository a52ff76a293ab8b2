"""
Synthetic health-insurance portfolio for the discrimination-free pricing example.

Three claim types with Poisson frequencies driven by age, smoking and gender:
- type 1 (pregnancy) only hits women aged 20-40,
- type 2 depends on age, smoking and gender,
- type 3 depends on age only.

Gender is the protected attribute. It is correlated with smoking in the
population, which is what makes the unawareness price leak gender information.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

import config

CLAIM_TYPES = (1, 2, 3)


# ============================================================================
# POPULATION
# ============================================================================

def _check_probability(name, value):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must lie in [0, 1], got {value}")


@dataclass(frozen=True)
class PopulationProportions:
    """Marginal and conditional gender/smoking proportions of the population."""

    woman: float = config.WOMAN_PROPORTION
    smoker: float = config.SMOKER_PROPORTION
    woman_given_smoker: float = config.WOMAN_GIVEN_SMOKER

    def __post_init__(self):
        _check_probability("P(woman)", self.woman)
        _check_probability("P(woman | smoker)", self.woman_given_smoker)
        if not 0.0 < self.smoker < 1.0:
            raise ValueError(f"P(smoker) must lie strictly in (0, 1), got {self.smoker}")
        if not 0.0 < self.woman < 1.0:
            raise ValueError(f"P(woman) must lie strictly in (0, 1), got {self.woman}")

        # Law of total probability must leave room for the non-smokers
        _check_probability("derived P(woman | non-smoker)", self.woman_given_non_smoker)

    @property
    def woman_given_non_smoker(self):
        # P(w) = P(w|s) P(s) + P(w|not s) (1 - P(s))
        return (self.woman - self.woman_given_smoker * self.smoker) / (1.0 - self.smoker)

    @property
    def smoker_given_woman(self):
        return self.woman_given_smoker * self.smoker / self.woman

    @property
    def smoker_given_man(self):
        return (1.0 - self.woman_given_smoker) * self.smoker / (1.0 - self.woman)

    def woman_given(self, smoker):
        """P(woman | smoking status), element-wise."""
        return np.where(np.asarray(smoker) == 1, self.woman_given_smoker, self.woman_given_non_smoker)


# ============================================================================
# FEATURES
# ============================================================================

def design_features(age, smoker, woman=None):
    """All candidate model features for the given covariates.

    ``woman`` may be omitted when only gender-free features are needed; the
    gender-dependent columns are then left out. Scalars and arrays broadcast
    against each other.

    Raises ValueError for ages outside [AGE_MIN, AGE_MAX] or indicators other than 0/1.
    """
    covariates = [np.atleast_1d(np.asarray(age, dtype=float)), np.asarray(smoker, dtype=float)]
    if woman is not None:
        covariates.append(np.asarray(woman, dtype=float))
    covariates = np.broadcast_arrays(*covariates)
    age, smoker = covariates[0], covariates[1]

    if ((age < config.AGE_MIN) | (age > config.AGE_MAX)).any():
        raise ValueError(f"Ages must lie in [{config.AGE_MIN}, {config.AGE_MAX}]")
    if not np.isin(smoker, (0, 1)).all():
        raise ValueError("Smoking status must be 0 or 1")

    pregnancy_age = (
        (age >= config.PREGNANCY_AGE_MIN) & (age <= config.PREGNANCY_AGE_MAX)
    ).astype(float)

    features = {"age": age, "smoker": smoker, "pregnancy_age": pregnancy_age}
    if woman is not None:
        woman = covariates[2]
        if not np.isin(woman, (0, 1)).all():
            raise ValueError("Protected attribute must be 0 or 1")
        features["woman"] = woman
        features["woman_pregnancy_age"] = woman * pregnancy_age

    return pd.DataFrame(features)


# ============================================================================
# FREQUENCY MODELS
# ============================================================================

class LogLinearFrequency:
    """Expected claim frequency per claim type, rate = exp(intercept + x . coef).

    ``coefficients`` maps claim type to a Series indexed by ``Intercept`` followed
    by the feature names.
    """

    def __init__(self, coefficients):
        missing = [k for k in CLAIM_TYPES if k not in coefficients]
        if missing:
            raise ValueError(f"No coefficients for claim types {missing}")
        self.coefficients = coefficients

    @classmethod
    def closed_form(cls):
        """The generating model of the simulated portfolio."""
        true = {1: config.ALPHA0, 2: config.BETA0, 3: config.GAMMA0}
        return cls(
            {
                k: pd.Series(true[k], index=["Intercept"] + config.TRUE_MODEL_FEATURES[k])
                for k in CLAIM_TYPES
            }
        )

    @classmethod
    def fit(cls, portfolio, model_features=None):
        """Maximum-likelihood Poisson fit of every claim type on a simulated portfolio.

        Raises RuntimeError if IRLS does not converge.
        """
        model_features = config.TRUE_MODEL_FEATURES if model_features is None else model_features

        woman = portfolio["woman"] if "woman" in portfolio.columns else None
        data = design_features(portfolio["age"], portfolio["smoker"], woman)

        coefficients = {}
        for k in CLAIM_TYPES:
            data[f"claims_{k}"] = portfolio[f"claims_{k}"].to_numpy()
            formula = f"claims_{k} ~ " + " + ".join(model_features[k])
            result = smf.glm(formula, data=data, family=sm.families.Poisson()).fit()
            if not result.converged:
                raise RuntimeError(f"Poisson GLM for claim type {k} did not converge ({formula})")
            coefficients[k] = result.params

        return cls(coefficients)

    @property
    def uses_protected(self):
        return any(
            name in ("woman", "woman_pregnancy_age")
            for coef in self.coefficients.values()
            for name in coef.index
        )

    def rate(self, claim_type, age, smoker, woman=None):
        """Expected number of claims of one type, element-wise over the covariates."""
        if claim_type not in self.coefficients:
            raise ValueError(f"Unknown claim type {claim_type}")
        if woman is None and self.uses_protected:
            raise ValueError("This frequency model needs the protected attribute")

        coef = self.coefficients[claim_type]
        features = design_features(age, smoker, woman)

        eta = coef["Intercept"] + features[coef.index[1:]].to_numpy() @ coef.iloc[1:].to_numpy()
        rate = np.exp(eta)
        scalar = np.ndim(age) == 0 and np.ndim(smoker) == 0 and np.ndim(woman) == 0
        return float(rate[0]) if scalar else rate


# ============================================================================
# SIMULATION
# ============================================================================

def simulate_covariates(n=config.PORTFOLIO_SIZE, population=None, seed=config.HEALTH_SEED):
    """Ages uniform on [AGE_MIN, AGE_MAX]; smoking sampled within each gender group.

    Group sizes are exact: round(n P(woman)) women, and within each gender the
    smokers are drawn without replacement at P(smoker | gender).
    """
    population = PopulationProportions() if population is None else population
    rng = np.random.default_rng(seed)

    age = rng.integers(config.AGE_MIN, config.AGE_MAX + 1, size=n)

    woman = np.zeros(n, dtype=int)
    women = rng.choice(n, size=int(round(n * population.woman)), replace=False)
    woman[women] = 1
    men = np.flatnonzero(woman == 0)

    smoker = np.zeros(n, dtype=int)
    smoking_women = rng.choice(
        women, size=int(round(len(women) * population.smoker_given_woman)), replace=False
    )
    smoking_men = rng.choice(
        men, size=int(round(len(men) * population.smoker_given_man)), replace=False
    )
    smoker[smoking_women] = 1
    smoker[smoking_men] = 1

    return pd.DataFrame({"age": age, "smoker": smoker, "woman": woman})


def simulate_portfolio(n=config.PORTFOLIO_SIZE, population=None, frequency=None, seed=config.HEALTH_SEED):
    """Covariates plus Poisson claim counts ``claims_1``..``claims_3`` (unit exposure)."""
    frequency = LogLinearFrequency.closed_form() if frequency is None else frequency
    portfolio = simulate_covariates(n, population, seed)

    # Claim counts draw from their own stream
    rng = np.random.default_rng([seed, 1])
    for k in CLAIM_TYPES:
        lam = frequency.rate(k, portfolio["age"], portfolio["smoker"], portfolio["woman"])
        portfolio[f"claims_{k}"] = rng.poisson(lam)

    return portfolio
