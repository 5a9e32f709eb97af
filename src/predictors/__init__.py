from .base import NullPredictor, Predictor, StaticPredictor

__all__ = ["NullPredictor", "Predictor", "StaticPredictor"]
