"""crmsync - reconcile declared Pacemaker primitives through the crm shell."""

__version__ = "0.1.0"
