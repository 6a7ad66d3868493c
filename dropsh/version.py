"""Version information for dropsh"""

__version__ = "0.3.0"

# Populated by release tooling
__git_hash__ = "dev"
__build_date__ = "dev"

def get_version_string():
    """Get formatted version string"""
    if __git_hash__ == "dev":
        return f"dropsh {__version__} (dev)"
    return f"dropsh {__version__} (git: {__git_hash__}, built: {__build_date__})"
