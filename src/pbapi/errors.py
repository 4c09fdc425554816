from __future__ import annotations


class PbApiError(Exception):
    """Base class for every error raised by pbapi."""


class RouteCompileError(PbApiError):
    """Raised while turning an API description into route entries."""


class UnsupportedArity(RouteCompileError):
    def __init__(self, arity: int, max_arity: int):
        super().__init__(
            f"No generic handler takes {arity} path parameters (supported: 0..{max_arity})"
        )
        self.arity = arity
        self.max_arity = max_arity


class TooManyPathParameters(RouteCompileError):
    def __init__(self, path: str, count: int, max_arity: int):
        super().__init__(
            f"Too many path parameters in {path}: {count} declared, "
            f"handlers only take up to {max_arity}"
        )
        self.path = path
        self.count = count


class UnsupportedMethod(RouteCompileError):
    def __init__(self, method: str):
        super().__init__(f'Method: "{method}" not supported!')
        self.method = method


class MissingPathPlaceholder(RouteCompileError):
    def __init__(self, path: str, name: str):
        super().__init__(f"Path parameter {name!r} has no placeholder in {path}")
        self.path = path
        self.name = name


class RouteCollision(RouteCompileError):
    def __init__(self, template: str, method: str):
        super().__init__(f"Route {method.upper()} {template} is defined more than once")
        self.template = template
        self.method = method


class DispatchInvariantError(PbApiError):
    """The dispatch table and the generic handler disagree on path arity."""


class PluginError(PbApiError):
    pass


class PluginNotFound(PluginError):
    def __init__(self, plugin_id: str):
        super().__init__(f"No API plugin with id {plugin_id!r}")
        self.plugin_id = plugin_id


class UnknownOperation(PluginError):
    def __init__(self, plugin_id: str, name: str):
        super().__init__(f"API {plugin_id!r} has no operation {name!r}")
        self.plugin_id = plugin_id
        self.name = name


class DescriptionNotFound(PbApiError):
    def __init__(self, name: str):
        super().__init__(f"No API description named {name!r}")
        self.name = name
