"""Reconcile Terraform state against live AWS infrastructure."""

__version__ = "0.1.0"
