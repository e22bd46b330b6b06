"""Model fitting, coefficient tables and figures for simulated sweeps."""

from .figures import FigureStyle, plot_coefficients, save_figure
from .models import FitError, FittedModel, fit_all, fit_model
from .reporting import coefficients_frame, model_metrics

__all__ = [
    "FigureStyle",
    "FitError",
    "FittedModel",
    "coefficients_frame",
    "fit_all",
    "fit_model",
    "model_metrics",
    "plot_coefficients",
    "save_figure",
]
