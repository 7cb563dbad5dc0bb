"""
Container image build tool run by the CodeBuild stage of the pipeline.

Builds the backend and frontend images, pushes them to ECR and writes the
image definition artifacts consumed by the deploy stage.
"""

__version__ = "0.1.0"
