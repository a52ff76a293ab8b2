import warnings

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import PoissonRegressor
from sklearn.metrics import mean_poisson_deviance
from sklearn.pipeline import Pipeline
import config
import data_preprocessing


def train_frequency_model(df_train):
    """
    Fits a Poisson GLM for Frequency (Claims per Year).
    Uses a Pipeline to handle categorical variables (One-Hot Encoding) automatically.

    Raises:
    -------
    RuntimeError if the solver stops before convergence.
    """
    features = data_preprocessing.model_features()

    # Poisson is the standard choice for count data in insurance
    glm = PoissonRegressor(
        alpha=config.GLM_ALPHA, max_iter=config.MAX_ITER, solver=config.GLM_SOLVER
    )

    model_pipeline = Pipeline(
        [("preprocessor", data_preprocessing.make_preprocessor()), ("regressor", glm)]
    )

    # Target is claim rate (claims per unit exposure), not raw count.
    # Rate target with exposure weights gives the same likelihood as a log(Exposure) offset
    y_train = df_train["ClaimNb"] / df_train["Exposure"]

    print("Fitting Frequency GLM...")

    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            model_pipeline.fit(
                df_train[features],
                y_train,
                regressor__sample_weight=df_train["Exposure"],
            )
        except ConvergenceWarning as exc:
            raise RuntimeError(f"Frequency GLM did not converge: {exc}") from exc

    return model_pipeline, features


def predict_claim_counts(model, df, features):
    """
    Expected number of claims: predicted frequency times exposure.
    """
    return model.predict(df[features]) * df["Exposure"].to_numpy()


def poisson_deviance(y_true, y_pred):
    """
    Average Poisson deviance of claim counts, in units of 10^-2.
    """
    return config.DEVIANCE_SCALE * mean_poisson_deviance(
        np.asarray(y_true, dtype=float), np.asarray(y_pred, dtype=float)
    )


def glm_coefficients(model):
    """
    Returns the fitted GLM parameters as a Series indexed by design column,
    intercept first.
    """
    names = model.named_steps["preprocessor"].get_feature_names_out()
    regressor = model.named_steps["regressor"]

    return pd.Series(
        np.concatenate(([regressor.intercept_], regressor.coef_)),
        index=["intercept"] + list(names),
        name="GLM",
    )


def parameter_count(model):
    return len(glm_coefficients(model))
