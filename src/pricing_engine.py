import matplotlib.pyplot as plt
import numpy as np
import time
import pandas as pd
from sklearn.model_selection import train_test_split

import data_preprocessing
import frequency_model
import neural_network
import config
from plotting import get_plots_dir, save_figure


def model_summary(name, y_train, pred_train, y_test, pred_test, exposure_test, n_params, run_time):
    """
    One row of the model comparison table.
    """
    return {
        "model": name,
        "run_time": round(run_time, 1),
        "parameters": n_params,
        "in_sample_loss": round(frequency_model.poisson_deviance(y_train, pred_train), 4),
        "out_sample_loss": round(frequency_model.poisson_deviance(y_test, pred_test), 4),
        "avg_freq": round(np.sum(pred_test) / np.sum(exposure_test), 4),
    }


def compare_models(rows):
    return pd.DataFrame(rows).set_index("model")


def plot_training_history(history, filename=None, return_fig=False):
    """
    Plots training and validation Poisson loss per epoch.

    Parameters:
    -----------
    history : keras History
        Object returned by model.fit
    filename : str, optional
        Filename to save the chart
    return_fig : bool, default False
        If True, returns matplotlib figure object
    """
    losses = history.history["loss"]
    epochs = range(1, len(losses) + 1)

    fig, ax = plt.subplots(figsize=(config.PLOT_FIGSIZE_WIDTH, config.PLOT_FIGSIZE_HEIGHT))
    ax.plot(epochs, losses, color="blue", linewidth=2, label="Training Loss")
    if "val_loss" in history.history:
        ax.plot(
            epochs, history.history["val_loss"], color="red", linewidth=2, label="Validation Loss"
        )

    ax.set_xlabel("Epoch", fontsize=11)
    ax.set_ylabel("Poisson Loss", fontsize=11)
    ax.set_title("Shallow Network: Loss over Epochs", fontsize=13, fontweight="bold")
    ax.grid(axis="y", linestyle="--", alpha=0.5)
    ax.legend(loc="upper right", fontsize=10)

    plt.tight_layout()

    if return_fig:
        return fig

    if filename:
        save_figure(fig, filename)
    plt.close(fig)


def plot_prediction_scatter(freq_glm, freq_nn, filename=None, return_fig=False):
    """
    Log-log scatter of GLM against network predicted frequencies.
    Points on the diagonal mean both models agree.
    """
    freq_glm = np.asarray(freq_glm)
    freq_nn = np.asarray(freq_nn)

    # Subsample - plotting every policy gives an unreadable blob
    if len(freq_glm) > config.SCATTER_SAMPLE_SIZE:
        rng = np.random.default_rng(config.RANDOM_STATE)
        idx = rng.choice(len(freq_glm), size=config.SCATTER_SAMPLE_SIZE, replace=False)
        freq_glm = freq_glm[idx]
        freq_nn = freq_nn[idx]

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.scatter(freq_glm, freq_nn, s=4, alpha=0.3, color="blue")

    lower = min(freq_glm.min(), freq_nn.min())
    upper = max(freq_glm.max(), freq_nn.max())
    ax.plot([lower, upper], [lower, upper], "k--", linewidth=1.5, label="Equal Frequency")

    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_xlabel("GLM Frequency", fontsize=11)
    ax.set_ylabel("Network Frequency", fontsize=11)
    ax.set_title("GLM vs Shallow Network", fontsize=13, fontweight="bold")
    ax.legend(loc="upper left", fontsize=10)
    ax.grid(True, linestyle="--", alpha=0.5)

    plt.tight_layout()

    if return_fig:
        return fig

    if filename:
        save_figure(fig, filename)
    plt.close(fig)


def run_frequency_comparison(df=None, path=None, epochs=None):
    """
    Runs the GLM vs shallow network comparison and returns results.

    Parameters:
    -----------
    df : pd.DataFrame, optional
        Raw freMTPL2freq data. Loaded from path or OpenML if not given
    path : str, optional
        Local CSV file with the frequency data
    epochs : int, optional
        Overrides config.NN_EPOCHS

    Returns:
    --------
    dict containing:
        - comparison: pd.DataFrame with one row per model
        - coefficients: pd.DataFrame with GLM and network parameters side by side
        - test_results: pd.DataFrame with predicted frequencies on the test set
        - history: keras History of the network
    """
    if df is None:
        df = data_preprocessing.load_frequency_data(path)
    else:
        data_preprocessing.validate_frequency_data(df)

    df = data_preprocessing.preprocess_data(df)
    df = data_preprocessing.add_glm_features(df)

    train, test = train_test_split(df, test_size=config.TEST_SIZE, random_state=config.RANDOM_STATE)

    start = time.time()
    glm, feat_glm = frequency_model.train_frequency_model(train)
    glm_time = time.time() - start

    start = time.time()
    net, scaler, feat_nn, history = neural_network.train_shallow_network(train, epochs=epochs)
    nn_time = time.time() - start

    glm_train = frequency_model.predict_claim_counts(glm, train, feat_glm)
    glm_test = frequency_model.predict_claim_counts(glm, test, feat_glm)
    nn_train = neural_network.predict_claim_counts(net, scaler, train, feat_nn)
    nn_test = neural_network.predict_claim_counts(net, scaler, test, feat_nn)

    rows = [
        model_summary(
            "Poisson GLM",
            train["ClaimNb"], glm_train,
            test["ClaimNb"], glm_test,
            test["Exposure"],
            frequency_model.parameter_count(glm),
            glm_time,
        ),
        model_summary(
            "Shallow Network",
            train["ClaimNb"], nn_train,
            test["ClaimNb"], nn_test,
            test["Exposure"],
            neural_network.parameter_count(net),
            nn_time,
        ),
    ]

    test_results = test.copy()
    test_results["Freq_GLM"] = glm_test / test["Exposure"]
    test_results["Freq_NN"] = nn_test / test["Exposure"]

    coefficients = pd.concat(
        [
            frequency_model.glm_coefficients(glm),
            neural_network.network_coefficients(net, scaler),
        ],
        axis=1,
    )

    return {
        "comparison": compare_models(rows),
        "coefficients": coefficients,
        "test_results": test_results,
        "history": history,
        "empirical_freq": train["ClaimNb"].sum() / train["Exposure"].sum(),
    }


def main(path=None):
    print("Loading data...")
    results = run_frequency_comparison(path=path)

    print("\n" + "=" * 70)
    print("MODEL VALIDATION: Poisson Deviance (10^-2)")
    print("=" * 70)
    print(results["comparison"].to_string())
    print(f"\nEmpirical frequency (train): {results['empirical_freq']:.4f}")
    print("=" * 70 + "\n")

    print("Fitted parameters:")
    print(results["coefficients"].round(4).to_string())

    plots_dir = get_plots_dir()

    print("\nGenerating charts...")
    plot_training_history(results["history"], filename=str(plots_dir / "network_loss.png"))
    plot_prediction_scatter(
        results["test_results"]["Freq_GLM"],
        results["test_results"]["Freq_NN"],
        filename=str(plots_dir / "glm_vs_network.png"),
    )

    print("\nAll visualizations saved to plots/ directory.")


if __name__ == "__main__":
    main()
