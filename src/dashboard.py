"""
Streamlit Dashboard for the Discrimination-Free Pricing Lab

Interactive dashboard to demonstrate how population proportions drive the gap
between discrimination-free and unawareness prices.
"""

import streamlit as st
import matplotlib.pyplot as plt

# Import pricing functions
import config
import discrimination_free
from health_portfolio import LogLinearFrequency, PopulationProportions

# Page Configuration
st.set_page_config(
    page_title="Discrimination-Free Pricing Lab", layout="wide", initial_sidebar_state="expanded"
)

st.markdown(
    """
    <style>
    .main-header {
        font-size: 2.2rem;
        font-weight: 700;
        color: #1e293b;
        margin-bottom: 0;
    }
    .sub-header {
        font-size: 1.05rem;
        color: #475569;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# Navbar / Header Section
with st.container():
    st.markdown(
        '<h1 class="main-header">Discrimination-Free Pricing Lab</h1>', unsafe_allow_html=True
    )
    st.markdown("---")
    st.markdown(
        '<p class="sub-header">Health insurance prices for three claim types, with gender '
        "as the protected attribute. Compare the best-estimate price with the "
        "discrimination-free price and the unawareness price, which drops gender "
        "but lets it back in through smoking.</p>",
        unsafe_allow_html=True,
    )


# ============================================================================
# CACHED FUNCTIONS - Heavy lifting happens here
# ============================================================================


@st.cache_resource
def fit_models(woman, smoker, woman_given_smoker):
    """
    Simulate a portfolio and fit the GLMs with and without gender.
    Cached per population so the fit only runs when the proportions change.
    """
    population = PopulationProportions(woman, smoker, woman_given_smoker)
    with st.spinner("Simulating portfolio and fitting GLMs (this may take a minute)..."):
        result = discrimination_free.run_discrimination_free_example(population=population)
    return result


# ============================================================================
# SIDEBAR - Population Controls
# ============================================================================

st.sidebar.header("Population")

woman = st.sidebar.slider(
    "P(woman)", min_value=0.05, max_value=0.95, value=config.WOMAN_PROPORTION, step=0.01
)
smoker = st.sidebar.slider(
    "P(smoker)", min_value=0.05, max_value=0.95, value=config.SMOKER_PROPORTION, step=0.01
)
woman_given_smoker = st.sidebar.slider(
    "P(woman | smoker)",
    min_value=0.0,
    max_value=1.0,
    value=config.WOMAN_GIVEN_SMOKER,
    step=0.01,
    help="Set equal to P(woman) to make gender independent of smoking",
)

st.sidebar.markdown("---")
st.sidebar.subheader("Policyholder")

age = st.sidebar.slider("Age", min_value=config.AGE_MIN, max_value=config.AGE_MAX, value=30)
is_smoker = int(st.sidebar.checkbox("Smoker", value=True))

st.sidebar.markdown("---")
use_fitted = st.sidebar.checkbox(
    "Use fitted GLMs",
    value=False,
    help=f"Simulate {config.PORTFOLIO_SIZE:,} policies and price with fitted coefficients",
)

# Degenerate proportions are rejected before any price is computed
try:
    population = PopulationProportions(woman, smoker, woman_given_smoker)
except ValueError as exc:
    st.error(f"Invalid population: {exc}")
    st.stop()

# ============================================================================
# MAIN AREA - Prices
# ============================================================================

if use_fitted:
    fitted = fit_models(woman, smoker, woman_given_smoker)
    frequency = fitted["fitted_model"]
    table = fitted["fitted_prices"]
else:
    frequency = LogLinearFrequency.closed_form()
    table = discrimination_free.price_table(frequency, population=population)

st.subheader(f"Prices: age {age}, {'smoker' if is_smoker else 'non-smoker'}")

col1, col2, col3, col4 = st.columns(4)

be_woman = discrimination_free.best_estimate_price(frequency, age, is_smoker, 1)
be_man = discrimination_free.best_estimate_price(frequency, age, is_smoker, 0)
df_price = discrimination_free.discrimination_free_price(frequency, age, is_smoker, population)
ua_price = discrimination_free.unawareness_price(frequency, age, is_smoker, population)

with col1:
    st.metric(label="Best-Estimate (Woman)", value=f"{be_woman:.4f}")

with col2:
    st.metric(label="Best-Estimate (Man)", value=f"{be_man:.4f}")

with col3:
    st.metric(
        label="Discrimination-Free",
        value=f"{df_price:.4f}",
        help="Gender mixed with P(woman), the same for everybody",
    )

with col4:
    st.metric(
        label="Unawareness",
        value=f"{ua_price:.4f}",
        delta=f"{ua_price - df_price:+.4f}",
        help="Gender mixed with P(woman | smoking status)",
    )

st.caption(f"Derived P(woman | non-smoker) = {population.woman_given_non_smoker:.4f}")

# ============================================================================
# TABS FOR ANALYSIS
# ============================================================================

tab1, tab2, tab3 = st.tabs(["Smokers", "Non-Smokers", "Price Table"])

with tab1:
    fig = discrimination_free.plot_prices(table, smoker=1, return_fig=True)
    st.pyplot(fig, use_container_width=True)
    plt.close(fig)

with tab2:
    fig = discrimination_free.plot_prices(table, smoker=0, return_fig=True)
    st.pyplot(fig, use_container_width=True)
    plt.close(fig)

with tab3:
    st.dataframe(table.round(4), use_container_width=True, hide_index=True)

# Footer
st.markdown("---")
st.markdown(
    "**Tip:** Set P(woman | smoker) equal to P(woman) and the unawareness price "
    "collapses onto the discrimination-free price."
)
