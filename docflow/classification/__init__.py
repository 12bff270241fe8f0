from docflow.classification.base import BaseClassifier
from docflow.classification.classifier import Classifier
from docflow.classification.factory import ClassifierFactory
from docflow.classification.models import ClassificationResult

__all__ = ["BaseClassifier", "ClassificationResult", "Classifier", "ClassifierFactory"]
