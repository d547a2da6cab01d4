class DroppyError(RuntimeError):
    def __init__(self, code: str, message: str, hint: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint


class ConfigInitError(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_CONFIG_INIT", message, hint)


class ResourceBuildError(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_RESOURCE_BUILD", message, hint)


class UpdateError(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_UPDATE", message, hint)


class ServerStartError(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_SERVER_START", message, hint)


class ProcessLookupFailed(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_PROCESS_LOOKUP", message, hint)


class UserDBError(DroppyError):
    def __init__(self, message: str, hint: str = ""):
        super().__init__("ERR_USER_DB", message, hint)
