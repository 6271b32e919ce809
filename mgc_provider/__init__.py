"""Magalu Cloud resource provider.

Drives cloud resources (virtual machines, block storage, DBaaS, Kubernetes,
networking) from a declared desired state to an observed remote state:
issue the mutating API call, then poll the resource's status until it
settles, fails, or the operation's deadline passes.
"""

__version__ = "0.1.0"
