"""kopf handlers wiring the reconcilers and the defaulting hook to the cluster."""
