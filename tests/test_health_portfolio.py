import numpy as np
import pytest

import config
from health_portfolio import (
    CLAIM_TYPES,
    LogLinearFrequency,
    PopulationProportions,
    design_features,
    simulate_covariates,
    simulate_portfolio,
)


@pytest.fixture(scope="module")
def portfolio():
    return simulate_portfolio(n=config.PORTFOLIO_SIZE, seed=11)


@pytest.fixture(scope="module")
def fitted_model(portfolio):
    return LogLinearFrequency.fit(portfolio)


@pytest.fixture(scope="module")
def unaware_model(portfolio):
    return LogLinearFrequency.fit(portfolio.drop(columns="woman"), config.UNAWARE_MODEL_FEATURES)


def test_derived_conditional_probabilities(population):
    assert population.woman_given_non_smoker == pytest.approx((0.45 - 0.8 * 0.3) / (1 - 0.3))
    assert population.woman_given_non_smoker == pytest.approx(0.3)
    assert population.smoker_given_woman == pytest.approx(0.24 / 0.45)
    assert population.smoker_given_man == pytest.approx(0.06 / 0.55)


def test_woman_given_smoking_status(population):
    weights = population.woman_given(np.array([1, 0, 1]))
    assert weights.tolist() == pytest.approx([0.8, 0.3, 0.8])


@pytest.mark.parametrize(
    "woman, smoker, woman_given_smoker",
    [
        (0.2, 0.3, 0.8),  # derived P(woman | non-smoker) < 0
        (0.9, 0.6, 0.7),  # derived P(woman | non-smoker) > 1
        (0.45, 0.3, 1.2),
        (0.45, 1.0, 0.8),
        (0.0, 0.3, 0.0),
        (-0.1, 0.3, 0.8),
    ],
)
def test_degenerate_population_is_rejected(woman, smoker, woman_given_smoker):
    with pytest.raises(ValueError):
        PopulationProportions(woman, smoker, woman_given_smoker)


def test_design_features_without_gender():
    features = design_features([19, 20, 40, 41], 1)

    assert "woman" not in features.columns
    assert features["pregnancy_age"].tolist() == [0.0, 1.0, 1.0, 0.0]
    assert features["smoker"].tolist() == [1.0] * 4


def test_closed_form_rates(true_model):
    assert true_model.rate(1, 30, 1, 1) == pytest.approx(np.exp(-1.5))
    assert true_model.rate(1, 30, 1, 0) == pytest.approx(np.exp(-40.0))
    assert true_model.rate(1, 45, 0, 1) == pytest.approx(np.exp(-40.0))
    assert true_model.rate(2, 30, 1, 1) == pytest.approx(np.exp(-2 + 0.004 * 30 + 0.1 + 0.2))
    assert true_model.rate(2, 50, 0, 0) == pytest.approx(np.exp(-2 + 0.004 * 50))
    assert true_model.rate(3, 60, 1, 1) == pytest.approx(np.exp(-2 + 0.01 * 60))


def test_scalar_rate_is_float(true_model):
    assert isinstance(true_model.rate(2, 30, 0, 1), float)


def test_scalar_covariates_broadcast_against_protected_array(true_model):
    rates = true_model.rate(2, 30, 1, np.array([0, 1]))

    assert rates.shape == (2,)
    assert rates.tolist() == pytest.approx(
        [np.exp(-2 + 0.004 * 30 + 0.1), np.exp(-2 + 0.004 * 30 + 0.1 + 0.2)]
    )


@pytest.mark.parametrize(
    "age, smoker, woman, message",
    [
        (14, 0, 1, "Ages"),
        (81, 0, 1, "Ages"),
        (30, 2, 1, "Smoking status"),
        (30, 0.5, 0, "Smoking status"),
        (30, 1, -1, "Protected attribute"),
        ([30, 40], 1, [0, 3], "Protected attribute"),
    ],
)
def test_malformed_covariates_are_rejected(age, smoker, woman, message):
    with pytest.raises(ValueError, match=message):
        design_features(age, smoker, woman)


def test_unknown_claim_type(true_model):
    with pytest.raises(ValueError, match="claim type"):
        true_model.rate(4, 30, 0, 1)


def test_aware_model_needs_protected_attribute(true_model):
    with pytest.raises(ValueError, match="protected"):
        true_model.rate(2, 30, 0)


def test_rates_are_non_negative(true_model, fitted_model, unaware_model):
    age = np.repeat(np.arange(config.AGE_MIN, config.AGE_MAX + 1), 4)
    smoker = np.tile([0, 0, 1, 1], len(age) // 4)
    woman = np.tile([0, 1, 0, 1], len(age) // 4)

    for k in CLAIM_TYPES:
        assert (true_model.rate(k, age, smoker, woman) >= 0).all()
        assert (fitted_model.rate(k, age, smoker, woman) >= 0).all()
        assert (unaware_model.rate(k, age, smoker) >= 0).all()


def test_simulated_group_sizes_are_exact(population):
    n = 10000
    covariates = simulate_covariates(n, population, seed=3)

    women = covariates["woman"] == 1
    assert women.sum() == round(n * population.woman)
    assert covariates.loc[women, "smoker"].sum() == round(women.sum() * population.smoker_given_woman)
    assert covariates.loc[~women, "smoker"].sum() == round(
        (~women).sum() * population.smoker_given_man
    )
    assert covariates["age"].between(config.AGE_MIN, config.AGE_MAX).all()


def test_simulated_smokers_follow_conditional_gender_rate(population):
    covariates = simulate_covariates(config.PORTFOLIO_SIZE, population, seed=5)

    smokers = covariates[covariates["smoker"] == 1]
    assert covariates["smoker"].mean() == pytest.approx(population.smoker, abs=1e-3)
    assert smokers["woman"].mean() == pytest.approx(population.woman_given_smoker, abs=1e-3)


def test_simulation_is_reproducible():
    first = simulate_portfolio(n=1000, seed=9)
    second = simulate_portfolio(n=1000, seed=9)

    assert first.equals(second)


def test_fit_recovers_generating_coefficients(fitted_model):
    beta = fitted_model.coefficients[2]
    assert beta["Intercept"] == pytest.approx(config.BETA0[0], abs=0.1)
    assert beta["age"] == pytest.approx(config.BETA0[1], abs=0.002)
    assert beta["smoker"] == pytest.approx(config.BETA0[2], abs=0.08)
    assert beta["woman"] == pytest.approx(config.BETA0[3], abs=0.08)

    gamma = fitted_model.coefficients[3]
    assert gamma["Intercept"] == pytest.approx(config.GAMMA0[0], abs=0.1)
    assert gamma["age"] == pytest.approx(config.GAMMA0[1], abs=0.002)

    # Men never claim type 1, so only the women's rate in the pregnancy bracket is identified
    alpha = fitted_model.coefficients[1]
    assert alpha["Intercept"] + alpha["woman_pregnancy_age"] == pytest.approx(
        sum(config.ALPHA0), abs=0.1
    )
    assert fitted_model.rate(1, 50, 0, 1) < 1e-6


def test_unaware_fit_ignores_gender(unaware_model):
    assert not unaware_model.uses_protected
    assert "woman" not in unaware_model.coefficients[2].index


def test_fit_reports_non_convergence(portfolio, monkeypatch):
    import statsmodels.genmod.generalized_linear_model as glm_module

    original_fit = glm_module.GLM.fit

    def one_iteration(self, *args, **kwargs):
        kwargs["maxiter"] = 1
        return original_fit(self, *args, **kwargs)

    monkeypatch.setattr(glm_module.GLM, "fit", one_iteration)

    with pytest.raises(RuntimeError, match="did not converge"):
        LogLinearFrequency.fit(portfolio)
