"""Service convergence controller (svcctl).

One-shot reconciler for a single service running under a Habitat-style
supervisor:
 - probes the supervisor HTTP API for the service's current state
 - diffs it against the declared configuration
 - issues the minimal `hab svc ...` commands to converge
 - waits for stop/unload to settle during restart and reload

Nothing here runs in the background; every call reconciles once and returns.
"""
