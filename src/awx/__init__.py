"""awx - AWS profile credential resolver and aws CLI wrapper

Philosophy:
- Resolve credentials fresh on every run (nothing cached to disk)
- Delegate all AWS protocol work to the aws CLI
- Fail fast with helpful guidance

awx picks a named profile from ~/.aws/config and ~/.aws/credentials, obtains
SSO, MFA session or assumed-role credentials as the profile requires, and runs
the given aws command with those credentials injected into its environment.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
