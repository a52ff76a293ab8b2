"""
Poisson neural network with zero hidden layers.

With no hidden layer and an exponential output the network computes
exp(b + w.x + log(Exposure)), which is exactly the Poisson GLM with a log-exposure
offset. The only difference is the fitting procedure: gradient descent on the
Poisson loss instead of iteratively re-weighted least squares.
"""

import numpy as np
import pandas as pd
import tensorflow as tf
from tensorflow.keras.layers import Input, Dense, Add, Activation
from tensorflow.keras.initializers import Constant
from tensorflow.keras.models import Model
import config
import data_preprocessing


def build_shallow_network(n_features, average_frequency):
    """
    Builds the zero-hidden-layer network.

    The weights start at zero and the bias at the log of the portfolio frequency,
    so training starts from the homogeneous model.
    """
    design = Input(shape=(n_features,), dtype="float32", name="design")
    log_exposure = Input(shape=(1,), dtype="float32", name="log_exposure")

    network = Dense(
        1,
        activation="linear",
        kernel_initializer="zeros",
        bias_initializer=Constant(float(np.log(average_frequency))),
        name="network",
    )(design)

    response = Add(name="add_offset")([network, log_exposure])
    response = Activation("exponential", name="response")(response)

    model = Model(inputs=[design, log_exposure], outputs=response)
    model.compile(loss="poisson", optimizer=config.NN_OPTIMIZER)

    return model


def _network_inputs(preprocessor, df, features):
    design = preprocessor.transform(df[features]).astype("float32")
    log_exposure = np.log(df["Exposure"].to_numpy(dtype="float32")).reshape(-1, 1)
    return [design, log_exposure]


def train_shallow_network(df_train, epochs=None, batch_size=None, validation_split=None):
    """
    Fits the zero-hidden-layer Poisson network on claim counts.

    Returns:
    --------
    tuple: (model, preprocessor, features, history)
    """
    epochs = config.NN_EPOCHS if epochs is None else epochs
    batch_size = config.NN_BATCH_SIZE if batch_size is None else batch_size
    validation_split = config.NN_VALIDATION_SPLIT if validation_split is None else validation_split

    tf.keras.utils.set_random_seed(config.NN_SEED)

    features = data_preprocessing.model_features()

    # Continuous inputs scaled to [-1, 1], categorical inputs dummy coded like the GLM
    preprocessor = data_preprocessing.make_preprocessor(scale_numeric=True)
    preprocessor.fit(df_train[features])

    inputs = _network_inputs(preprocessor, df_train, features)
    y_train = df_train["ClaimNb"].to_numpy(dtype="float32").reshape(-1, 1)

    average_frequency = df_train["ClaimNb"].sum() / df_train["Exposure"].sum()
    model = build_shallow_network(inputs[0].shape[1], average_frequency)

    print("Fitting Shallow Poisson Network...")
    history = model.fit(
        inputs,
        y_train,
        epochs=epochs,
        batch_size=batch_size,
        validation_split=validation_split,
        verbose=0,
    )

    final_loss = history.history["loss"][-1]
    if not np.isfinite(final_loss):
        raise RuntimeError(f"Network training diverged (final loss {final_loss})")

    return model, preprocessor, features, history


def predict_claim_counts(model, preprocessor, df, features):
    """
    Expected number of claims, exposure included through the offset input.
    """
    inputs = _network_inputs(preprocessor, df, features)
    return model.predict(inputs, batch_size=config.NN_BATCH_SIZE, verbose=0).ravel()


def network_coefficients(model, preprocessor):
    """
    Returns the network weights as a Series indexed by design column, bias first.
    Continuous weights refer to the scaled inputs, so they are not directly comparable
    to the GLM coefficients.
    """
    kernel, bias = model.get_layer("network").get_weights()
    names = preprocessor.get_feature_names_out()

    return pd.Series(
        np.concatenate((bias, kernel.ravel())),
        index=["intercept"] + list(names),
        name="Network",
    )


def parameter_count(model):
    return int(model.count_params())
