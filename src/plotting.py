import os
from pathlib import Path

# Find project root dynamically so plots save correctly regardless of where script is run
CURRENT_FILE = Path(__file__).resolve()
ROOT_DIR = CURRENT_FILE.parent.parent
PLOTS_DIR = ROOT_DIR / "plots"


def get_plots_dir():
    """
    Returns the absolute path to the plots directory.
    Creates the directory if it doesn't exist.

    Returns:
    --------
    Path: Absolute path to plots directory
    """
    if not PLOTS_DIR.exists():
        PLOTS_DIR.mkdir(parents=True, exist_ok=True)
        print(f"Created directory: {PLOTS_DIR}/")
    return PLOTS_DIR


def save_figure(fig, filename):
    """
    Saves a figure to the plots directory unless an absolute path is given.
    """
    if not os.path.isabs(filename):
        filename = str(get_plots_dir() / Path(filename).name)
    fig.savefig(filename, dpi=300, bbox_inches="tight")
    print(f"Saved chart to {filename}")
    return filename
