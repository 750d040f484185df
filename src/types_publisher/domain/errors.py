class TypesPublisherError(Exception):
    """base class for exceptions in types-publisher."""
    pass


class NpmRegistryError(TypesPublisherError):
    """raised when the registry answers with an error payload."""
    def __init__(self, package_name: str, message: str):
        self.package_name = package_name
        self.message = message
        super().__init__(f"Error getting version at {package_name}: {message}")


class PublishError(TypesPublisherError):
    """raised when a publish, tag or deprecate call fails."""
    pass


class MissingSecretError(TypesPublisherError):
    """raised when a required secret cannot be resolved."""
    def __init__(self, secret_name: str):
        self.secret_name = secret_name
        super().__init__(f"Secret '{secret_name}' is not configured")


class CacheSessionError(TypesPublisherError):
    """raised when a cache file is already owned by another session."""
    pass
