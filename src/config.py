"""
Configuration file for the Poisson Frequency Modelling & Discrimination-Free Pricing Lab.

This module centralizes all hardcoded parameters and constants used throughout
the project to improve maintainability and configurability.
"""

# ============================================================================
# DATA SOURCES
# ============================================================================

# OpenML Dataset ID for freMTPL2freq (French Motor Third-Party Liability)
OPENML_FREQUENCY_DATA_ID = 41214

# Columns the frequency dataset must provide
REQUIRED_COLUMNS = [
    "IDpol",
    "ClaimNb",
    "Exposure",
    "Area",
    "VehPower",
    "VehAge",
    "DrivAge",
    "BonusMalus",
    "VehBrand",
    "VehGas",
    "Density",
    "Region",
]

# ============================================================================
# DATA SPLITTING
# ============================================================================

TEST_SIZE = 0.1
RANDOM_STATE = 42

# ============================================================================
# DATA CLEANING
# ============================================================================

MAX_CLAIM_NB = 4
MAX_EXPOSURE = 1.0

# ============================================================================
# FEATURE BINNING CONFIGURATION
# ============================================================================

# Area codes are ordinal (A = rural ... F = urban)
AREA_CODES = {"A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6}

VEHICLE_POWER_CAP = 9  # Values >= 9 are grouped together

# Vehicle age: new, 1-10 years, older
VEHICLE_AGE_BINS = [-1, 0, 10, 200]
VEHICLE_AGE_LABELS = ["0", "1-10", "11+"]

DRIVER_AGE_BINS = [0, 20, 25, 30, 40, 50, 70, 120]
DRIVER_AGE_LABELS = ["18-20", "21-25", "26-30", "31-40", "41-50", "51-70", "71+"]

BONUS_MALUS_CAP = 150

# ============================================================================
# MODEL FEATURES
# ============================================================================

CATEGORICAL_FEATURES = [
    "VehPowerGLM",
    "VehAgeGLM",
    "DrivAgeGLM",
    "VehBrand",
    "VehGas",
    "Region",
]

NUMERICAL_FEATURES = [
    "AreaGLM",
    "BonusMalusGLM",
    "DensityGLM",
]

# ============================================================================
# MODEL PARAMETERS
# ============================================================================

# GLM Hyperparameters. No penalty, so the GLM is the plain maximum-likelihood fit
# and stays comparable with the network
GLM_ALPHA = 0.0
GLM_SOLVER = "newton-cholesky"
MAX_ITER = 1000

# Shallow network (no hidden layers)
NN_EPOCHS = 100
NN_BATCH_SIZE = 10000
NN_VALIDATION_SPLIT = 0.2
NN_OPTIMIZER = "nadam"
NN_SCALE_RANGE = (-1, 1)
NN_SEED = 100

# Deviance reported in units of 10^-2
DEVIANCE_SCALE = 100

# ============================================================================
# HEALTH PORTFOLIO (DISCRIMINATION-FREE PRICING EXAMPLE)
# ============================================================================

PORTFOLIO_SIZE = 100_000
HEALTH_SEED = 1

AGE_MIN = 15
AGE_MAX = 80

# Claim type 1 only hits women in this age bracket (pregnancy)
PREGNANCY_AGE_MIN = 20
PREGNANCY_AGE_MAX = 40

# Expected cost per claim, by claim type
CLAIM_COSTS = (0.5, 0.9, 0.1)

# True log-linear coefficients, intercept first
ALPHA0 = (-40.0, 38.5)  # pregnancy-age woman indicator
BETA0 = (-2.0, 0.004, 0.1, 0.2)  # age, smoker, woman
GAMMA0 = (-2.0, 0.01)  # age

# Population proportions
WOMAN_PROPORTION = 0.45
SMOKER_PROPORTION = 0.3
WOMAN_GIVEN_SMOKER = 0.8

# Features of the generating model per claim type
TRUE_MODEL_FEATURES = {
    1: ["woman_pregnancy_age"],
    2: ["age", "smoker", "woman"],
    3: ["age"],
}

# Features of the models fitted without the protected attribute
UNAWARE_MODEL_FEATURES = {
    1: ["pregnancy_age", "smoker"],
    2: ["age", "smoker"],
    3: ["age"],
}

# ============================================================================
# VISUALIZATION PARAMETERS
# ============================================================================

PLOT_FIGSIZE_WIDTH = 10
PLOT_FIGSIZE_HEIGHT = 6

# Points drawn in the GLM vs network scatter
SCATTER_SAMPLE_SIZE = 5000
