class AppVersionError(RuntimeError):
    pass


class MalformedInputError(AppVersionError):
    pass


class SpecDecodeError(MalformedInputError):
    pass


class InputPreparationError(AppVersionError):
    pass


class PersistenceError(AppVersionError):
    pass


class AppNotFoundError(AppVersionError):
    pass


class DeployError(AppVersionError):
    pass


class GitOpsNotificationError(AppVersionError):
    pass
