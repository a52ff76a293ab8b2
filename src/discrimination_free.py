"""
Best-estimate, discrimination-free and unawareness prices for the health portfolio.

All three prices are built from the same frequency model:

    best-estimate        mu(x, d)  = sum_k cost_k * lambda_k(x, d)
    discrimination-free  h*(x)     = sum_d mu(x, d) P(D = d)
    unawareness          mu(x)     = sum_d mu(x, d) P(D = d | X = x)

The discrimination-free price uses the same gender weights for everybody, the
unawareness price weights by P(woman | smoker), so smoking acts as a proxy for gender.
"""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

import config
import health_portfolio
from health_portfolio import CLAIM_TYPES, LogLinearFrequency, PopulationProportions
from plotting import get_plots_dir, save_figure


def best_estimate_price(frequency, age, smoker, woman, claim_costs=config.CLAIM_COSTS):
    """Expected claim cost given all covariates, protected attribute included."""
    if len(claim_costs) != len(CLAIM_TYPES):
        raise ValueError(f"Expected {len(CLAIM_TYPES)} claim costs, got {len(claim_costs)}")

    return sum(
        cost * frequency.rate(k, age, smoker, woman) for k, cost in zip(CLAIM_TYPES, claim_costs)
    )


def mix_over_protected(price_woman, price_man, woman_weight):
    """Mixture of the two group prices with weight P(woman) on the women's price."""
    return woman_weight * price_woman + (1.0 - woman_weight) * price_man


def discrimination_free_price(frequency, age, smoker, population=None, claim_costs=config.CLAIM_COSTS):
    """
    Averages the best-estimate price over the unconditional gender distribution.
    The weight does not depend on any other covariate.
    """
    population = PopulationProportions() if population is None else population

    return mix_over_protected(
        best_estimate_price(frequency, age, smoker, 1, claim_costs),
        best_estimate_price(frequency, age, smoker, 0, claim_costs),
        population.woman,
    )


def unawareness_price(frequency, age, smoker, population=None, claim_costs=config.CLAIM_COSTS):
    """
    Averages the best-estimate price over the gender distribution given smoking status.
    This is what a model fitted without gender converges to.
    """
    population = PopulationProportions() if population is None else population

    weight = population.woman_given(smoker)
    if np.ndim(weight) == 0:
        weight = float(weight)

    return mix_over_protected(
        best_estimate_price(frequency, age, smoker, 1, claim_costs),
        best_estimate_price(frequency, age, smoker, 0, claim_costs),
        weight,
    )


def price_table(frequency, ages=None, population=None, unaware=None, claim_costs=config.CLAIM_COSTS):
    """
    All prices on an (age, smoker) grid.

    Parameters:
    -----------
    frequency : LogLinearFrequency
        Gender-aware frequency model (true or fitted)
    ages : iterable of int, optional
        Defaults to every age from config.AGE_MIN to config.AGE_MAX
    population : PopulationProportions, optional
    unaware : LogLinearFrequency, optional
        Model fitted without gender. Adds an 'unaware_fitted' column

    Returns:
    --------
    pd.DataFrame with columns age, smoker, best_estimate_woman, best_estimate_man,
    discrimination_free, unawareness (and unaware_fitted)
    """
    population = PopulationProportions() if population is None else population
    ages = np.arange(config.AGE_MIN, config.AGE_MAX + 1) if ages is None else np.atleast_1d(ages)

    grid = pd.DataFrame(
        {
            "age": np.tile(ages, 2),
            "smoker": np.repeat([0, 1], len(ages)),
        }
    )
    age = grid["age"].to_numpy()
    smoker = grid["smoker"].to_numpy()

    grid["best_estimate_woman"] = best_estimate_price(frequency, age, smoker, 1, claim_costs)
    grid["best_estimate_man"] = best_estimate_price(frequency, age, smoker, 0, claim_costs)
    grid["discrimination_free"] = discrimination_free_price(
        frequency, age, smoker, population, claim_costs
    )
    grid["unawareness"] = unawareness_price(frequency, age, smoker, population, claim_costs)

    if unaware is not None:
        grid["unaware_fitted"] = sum(
            cost * unaware.rate(k, age, smoker) for k, cost in zip(CLAIM_TYPES, claim_costs)
        )

    return grid


def plot_prices(table, smoker, title=None, filename=None, return_fig=False):
    """
    Price curves by age for smokers or non-smokers.
    """
    data = table[table["smoker"] == smoker].sort_values("age")
    label = "Smokers" if smoker == 1 else "Non-Smokers"

    fig, ax = plt.subplots(figsize=(config.PLOT_FIGSIZE_WIDTH, config.PLOT_FIGSIZE_HEIGHT))

    ax.plot(data["age"], data["best_estimate_woman"], color="red", linewidth=2, label="Best-Estimate (Women)")
    ax.plot(data["age"], data["best_estimate_man"], color="blue", linewidth=2, label="Best-Estimate (Men)")
    ax.plot(
        data["age"], data["discrimination_free"],
        color="green", linewidth=2.5, label="Discrimination-Free",
    )
    ax.plot(
        data["age"], data["unawareness"],
        color="orange", linewidth=2.5, linestyle="--", label="Unawareness",
    )
    if "unaware_fitted" in data.columns:
        ax.scatter(
            data["age"], data["unaware_fitted"],
            color="black", s=12, label="Unawareness (GLM without gender)",
        )

    ax.set_xlabel("Age", fontsize=11)
    ax.set_ylabel("Expected Claim Cost", fontsize=11)
    ax.set_title(title or f"Prices by Age: {label}", fontsize=13, fontweight="bold")
    ax.grid(axis="y", linestyle="--", alpha=0.5)
    ax.legend(loc="upper left", fontsize=9)

    plt.tight_layout()

    if return_fig:
        return fig

    if filename:
        save_figure(fig, filename)
    plt.close(fig)


def run_discrimination_free_example(n=config.PORTFOLIO_SIZE, population=None, seed=config.HEALTH_SEED):
    """
    Simulates the portfolio, fits gender-aware and gender-free GLMs and prices the grid.

    Returns:
    --------
    dict containing:
        - portfolio: simulated policies
        - true_model, fitted_model, unaware_model: LogLinearFrequency
        - true_prices, fitted_prices: pd.DataFrame from price_table
    """
    population = PopulationProportions() if population is None else population
    true_model = LogLinearFrequency.closed_form()

    print(f"Simulating portfolio of {n:,} policies...")
    portfolio = health_portfolio.simulate_portfolio(n, population, true_model, seed)

    print("Fitting Poisson GLMs with gender...")
    fitted_model = LogLinearFrequency.fit(portfolio, config.TRUE_MODEL_FEATURES)

    print("Fitting Poisson GLMs without gender...")
    unaware_model = LogLinearFrequency.fit(
        portfolio.drop(columns="woman"), config.UNAWARE_MODEL_FEATURES
    )

    return {
        "portfolio": portfolio,
        "population": population,
        "true_model": true_model,
        "fitted_model": fitted_model,
        "unaware_model": unaware_model,
        "true_prices": price_table(true_model, population=population),
        "fitted_prices": price_table(fitted_model, population=population, unaware=unaware_model),
    }


def main():
    results = run_discrimination_free_example()
    population = results["population"]
    portfolio = results["portfolio"]

    print("\n" + "=" * 50)
    print("PORTFOLIO")
    print("=" * 50)
    print(f"Women:                     {portfolio['woman'].mean():.4f}")
    print(f"Smokers:                   {portfolio['smoker'].mean():.4f}")
    print(f"P(woman | smoker):         {portfolio.loc[portfolio['smoker'] == 1, 'woman'].mean():.4f}")
    print(f"P(woman | non-smoker):     {population.woman_given_non_smoker:.4f}")
    for k in CLAIM_TYPES:
        print(f"Claims of type {k}:          {portfolio[f'claims_{k}'].sum():,}")

    print("\n" + "=" * 50)
    print("FITTED COEFFICIENTS vs TRUE")
    print("=" * 50)
    for k in CLAIM_TYPES:
        comparison = pd.DataFrame(
            {
                "true": results["true_model"].coefficients[k],
                "fitted": results["fitted_model"].coefficients[k],
            }
        )
        print(f"\nClaim type {k}:")
        print(comparison.round(4).to_string())

    # Worked example: a 30 year old smoker
    true_model = results["true_model"]
    print("\n" + "-" * 50)
    print("PRICES: age 30, smoker")
    print("-" * 50)
    print(f"Best-Estimate (woman):   {best_estimate_price(true_model, 30, 1, 1):.4f}")
    print(f"Best-Estimate (man):     {best_estimate_price(true_model, 30, 1, 0):.4f}")
    print(f"Discrimination-Free:     {discrimination_free_price(true_model, 30, 1, population):.4f}")
    print(f"Unawareness:             {unawareness_price(true_model, 30, 1, population):.4f}")
    print("-" * 50 + "\n")

    plots_dir = get_plots_dir()

    print("Generating price charts...")
    for smoker in (0, 1):
        suffix = "smokers" if smoker == 1 else "non_smokers"
        plot_prices(
            results["true_prices"], smoker,
            title=f"True Prices by Age ({suffix.replace('_', '-')})",
            filename=str(plots_dir / f"prices_true_{suffix}.png"),
        )
        plot_prices(
            results["fitted_prices"], smoker,
            title=f"Fitted Prices by Age ({suffix.replace('_', '-')})",
            filename=str(plots_dir / f"prices_fitted_{suffix}.png"),
        )

    print("\nAll visualizations saved to plots/ directory.")


if __name__ == "__main__":
    main()
