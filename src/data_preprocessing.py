import pandas as pd
import numpy as np
from sklearn.datasets import fetch_openml
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import MinMaxScaler, OneHotEncoder
import config


def fetch_raw_data():
    """
    Loads the standard French Motor Third-Party Liability frequency dataset.
    """
    print("Downloading dataset from OpenML...")
    freq = fetch_openml(data_id=config.OPENML_FREQUENCY_DATA_ID, as_frame=True, parser="auto").frame

    # OpenML sometimes returns IDs as strings, force to int
    freq["IDpol"] = freq["IDpol"].astype(int)

    # Older ARFF parsers keep the quotes around nominal values ('A' instead of A)
    freq = strip_quoted_categoricals(freq)

    return freq


def strip_quoted_categoricals(df):
    """
    Removes ARFF quoting from the categorical columns.
    """
    df = df.copy()
    for col in ["Area", "VehBrand", "VehGas", "Region"]:
        df[col] = df[col].astype(str).str.strip("'")
    return df


def load_frequency_data(path=None):
    """
    Loads freMTPL2freq from a local CSV file, or from OpenML when no path is given.
    The result is validated before anything else touches it.
    """
    if path is None:
        df = fetch_raw_data()
    else:
        print(f"Reading dataset from {path}...")
        df = pd.read_csv(path)

    validate_frequency_data(df)
    return df


def validate_frequency_data(df):
    """
    Fails fast on malformed input instead of fitting on partial data.

    Raises:
    -------
    ValueError if columns are missing, the frame is empty, required values are
    missing, claim counts are negative or exposures are not positive.
    """
    missing = [col for col in config.REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Frequency data is missing required columns: {missing}")

    if len(df) == 0:
        raise ValueError("Frequency data is empty")

    null_counts = df[config.REQUIRED_COLUMNS].isna().sum()
    null_counts = null_counts[null_counts > 0]
    if len(null_counts) > 0:
        raise ValueError(f"Frequency data has missing values: {null_counts.to_dict()}")

    if (df["ClaimNb"] < 0).any():
        raise ValueError("ClaimNb must be non-negative")

    if (df["Exposure"] <= 0).any():
        raise ValueError("Exposure must be strictly positive")


def preprocess_data(df):
    """
    Performs basic cleaning of the frequency data.
    """
    df = df.copy()

    # A handful of policies report more than 4 claims, most likely data errors
    df["ClaimNb"] = df["ClaimNb"].astype(int).clip(upper=config.MAX_CLAIM_NB)

    # Exposure is measured in years and contracts last at most one year
    df["Exposure"] = df["Exposure"].astype(float).clip(upper=config.MAX_EXPOSURE)

    # Ensure categoricals are strings - prevents issues with mixed types or numeric codes
    for col in ["Area", "VehBrand", "VehGas", "Region"]:
        df[col] = df[col].astype(str)

    return df


def add_glm_features(df):
    """
    Applies the standard actuarial feature engineering for the Poisson GLM.
    """
    df = df.copy()

    # Area is ordinal, so it enters as a single continuous code
    df["AreaGLM"] = df["Area"].map(config.AREA_CODES)
    if df["AreaGLM"].isna().any():
        unknown = sorted(df.loc[df["AreaGLM"].isna(), "Area"].unique())
        raise ValueError(f"Unknown Area codes: {unknown}")

    # Vehicle power: individual levels below the cap, everything above grouped
    df["VehPowerGLM"] = df["VehPower"].clip(upper=config.VEHICLE_POWER_CAP).astype(int).astype(str)

    df["VehAgeGLM"] = pd.cut(
        df["VehAge"], bins=config.VEHICLE_AGE_BINS, labels=config.VEHICLE_AGE_LABELS
    ).astype(str)

    # Finer granularity for young drivers where risk varies most
    df["DrivAgeGLM"] = pd.cut(
        df["DrivAge"], bins=config.DRIVER_AGE_BINS, labels=config.DRIVER_AGE_LABELS
    ).astype(str)

    df["BonusMalusGLM"] = df["BonusMalus"].clip(upper=config.BONUS_MALUS_CAP).astype(int)

    # Density is heavily right-skewed, log is roughly linear in frequency
    df["DensityGLM"] = np.log(df["Density"])

    return df


def make_preprocessor(scale_numeric=False):
    """
    Builds the design-matrix transformer shared by the GLM and the network.

    Parameters:
    -----------
    scale_numeric : bool, default False
        If True, continuous features are min-max scaled to config.NN_SCALE_RANGE.
        Gradient descent needs comparable input scales, the GLM does not and keeps
        interpretable coefficients on the raw scale.
    """
    numeric = (
        MinMaxScaler(feature_range=config.NN_SCALE_RANGE) if scale_numeric else "passthrough"
    )

    # OneHotEncoder with drop='first' avoids dummy variable trap
    # handle_unknown='ignore' - unseen test levels fall back to the reference level
    return ColumnTransformer(
        transformers=[
            (
                "cat",
                OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False),
                config.CATEGORICAL_FEATURES,
            ),
            ("num", numeric, config.NUMERICAL_FEATURES),
        ]
    )


def model_features():
    return config.CATEGORICAL_FEATURES + config.NUMERICAL_FEATURES
