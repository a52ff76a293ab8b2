from types import SimpleNamespace

import matplotlib.pyplot as plt
import numpy as np
import pytest

pytest.importorskip("tensorflow")

import pricing_engine


def test_model_summary_row():
    y = np.array([0.0, 1.0, 0.0, 2.0])
    pred = np.array([0.5, 0.5, 0.5, 1.5])
    exposure = np.array([1.0, 1.0, 0.5, 0.5])

    row = pricing_engine.model_summary("GLM", y, pred, y, pred, exposure, n_params=7, run_time=1.26)

    assert row["model"] == "GLM"
    assert row["parameters"] == 7
    assert row["run_time"] == 1.3
    assert row["in_sample_loss"] == row["out_sample_loss"]
    assert row["avg_freq"] == pytest.approx(3.0 / 3.0)


def test_compare_models_indexes_by_model():
    rows = [
        {"model": "Poisson GLM", "in_sample_loss": 31.2},
        {"model": "Shallow Network", "in_sample_loss": 31.3},
    ]

    table = pricing_engine.compare_models(rows)

    assert list(table.index) == ["Poisson GLM", "Shallow Network"]


def test_plot_training_history_returns_figure():
    history = SimpleNamespace(history={"loss": [0.32, 0.31, 0.30], "val_loss": [0.33, 0.32, 0.32]})

    fig = pricing_engine.plot_training_history(history, return_fig=True)

    assert len(fig.axes[0].lines) == 2
    plt.close(fig)


def test_plot_prediction_scatter_subsamples(monkeypatch):
    monkeypatch.setattr(pricing_engine.config, "SCATTER_SAMPLE_SIZE", 50)
    freq = np.linspace(0.01, 0.5, 200)

    fig = pricing_engine.plot_prediction_scatter(freq, freq * 1.01, return_fig=True)

    assert fig.axes[0].collections[0].get_offsets().shape == (50, 2)
    plt.close(fig)


def test_plot_saved_to_plots_dir(tmp_path, monkeypatch):
    import plotting

    monkeypatch.setattr(plotting, "PLOTS_DIR", tmp_path / "plots")
    history = SimpleNamespace(history={"loss": [0.3, 0.2]})

    pricing_engine.plot_training_history(history, filename="loss.png")

    assert (tmp_path / "plots" / "loss.png").exists()


def test_run_frequency_comparison(motor_data):
    results = pricing_engine.run_frequency_comparison(df=motor_data, epochs=2)

    comparison = results["comparison"]
    assert list(comparison.index) == ["Poisson GLM", "Shallow Network"]
    assert (comparison["in_sample_loss"] > 0).all()
    assert (comparison["out_sample_loss"] > 0).all()
    # Same design, so the same number of parameters
    assert comparison.loc["Poisson GLM", "parameters"] == comparison.loc["Shallow Network", "parameters"]

    assert list(results["coefficients"].columns) == ["GLM", "Network"]
    assert (results["test_results"]["Freq_GLM"] > 0).all()
    assert (results["test_results"]["Freq_NN"] > 0).all()


def test_run_frequency_comparison_rejects_bad_data(motor_data):
    with pytest.raises(ValueError):
        pricing_engine.run_frequency_comparison(df=motor_data.drop(columns="ClaimNb"))
