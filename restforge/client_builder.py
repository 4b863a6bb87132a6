import copy
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from . import configs as configs_module
from .configs import GlobalConfigs
from .errors import (
    AsyncRuntimeNotConfiguredError,
    InvalidManifestError,
    TransportNotConfiguredError,
)
from .ext_logging import call_id_generator, call_id_var
from .manifest import Manifest, MethodDescriptor, merge_configs
from .models import Request, Response, lower_keys
from .pipeline import PipelineExecutor
from .transports import resolve_transport

logger = logging.getLogger(__name__)

TransportClassFactory = Callable[[], Any]


class ResourceMethod:
    def __init__(
        self,
        manifest: Manifest,
        descriptor: MethodDescriptor,
        transport_class: Any,
        transport_configs: Mapping[str, Any],
        configs: GlobalConfigs,
    ):
        self._manifest = manifest
        self._descriptor = descriptor
        self._transport_class = transport_class
        self._transport_configs = transport_configs
        self._configs = configs

    @property
    def descriptor(self) -> MethodDescriptor:
        return self._descriptor

    def __call__(self, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Awaitable[Response]:
        # the request is built before anything is scheduled, so later changes
        # to the caller's arguments cannot leak into it
        request = self.build_request({**(params or {}), **kwargs})
        return self._configs.task_factory(self._execute(request))

    def build_request(self, args: Mapping[str, Any]) -> Request:
        """
        Build the initial request for a call.

        The keys named by the descriptor's ``body_attr``, ``headers_attr``,
        ``auth_attr`` and ``timeout_attr`` (and ``host_attr`` when host
        override is allowed) are extracted, an explicit ``params`` mapping is
        merged in, and every remaining key becomes a path/query param.

        The body is passed through as is (it may be a file or a stream); the
        other arguments are deep-copied.
        """
        descriptor = self._descriptor
        args = dict(args)
        body = args.pop(descriptor.body_attr, None)
        args = copy.deepcopy(args)

        headers = args.pop(descriptor.headers_attr, None) or {}
        auth = args.pop(descriptor.auth_attr, None) or {}
        timeout = args.pop(descriptor.timeout_attr, None)
        host = descriptor.host
        if descriptor.allow_resource_host_override and descriptor.host_attr in args:
            host = args.pop(descriptor.host_attr)
        explicit_params = args.pop("params", None) or {}

        return Request(
            method=descriptor.method,
            host=host,
            path_template=descriptor.path,
            params={**descriptor.params, **explicit_params, **args},
            headers={**lower_keys(descriptor.headers), **lower_keys(headers)},
            auth={**descriptor.auth, **auth},
            body=body,
            timeout=timeout if timeout is not None else descriptor.timeout,
            extras=copy.deepcopy(descriptor.extras),
            resource_name=descriptor.resource_name,
            resource_method=descriptor.method_name,
            query_param_alias=dict(descriptor.query_param_alias),
            binary=descriptor.binary,
            query_encoder=descriptor.query_encoder,
            parameter_encoder=descriptor.parameter_encoder,
        )

    async def _execute(self, request: Request) -> Response:
        token = call_id_var.set(call_id_generator())
        try:
            middleware = self._manifest.create_middleware(self._descriptor, self._configs.context)
            executor = PipelineExecutor(
                middleware,
                self._transport_class,
                self._transport_configs,
                self._configs.max_middleware_stack_execution_allowed,
            )
            logger.debug(
                f"-> {request.resource_name}.{request.resource_method} "
                f"with {len(middleware)} middleware"
            )
            return await executor.run(request)
        finally:
            call_id_var.reset(token)


class Resource:
    def __init__(self, name: str, methods: dict[str, ResourceMethod]):
        self._name = name
        self._methods = methods

    def __getattr__(self, name: str) -> ResourceMethod:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._methods[name]
        except KeyError:
            raise AttributeError(f'resource "{self._name}" has no method "{name}"') from None

    def __getitem__(self, name: str) -> ResourceMethod:
        return self._methods[name]

    def __iter__(self):
        return iter(self._methods)

    def __repr__(self) -> str:
        return f"<Resource {self._name} methods={list(self._methods)}>"


class Client:
    def __init__(self, manifest: Manifest, resources: dict[str, Resource]):
        self._manifest = manifest
        self._resources = resources

    def __getattr__(self, name: str) -> Resource:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._resources[name]
        except KeyError:
            raise AttributeError(f'client has no resource "{name}"') from None

    def __getitem__(self, name: str) -> Resource:
        return self._resources[name]

    def __iter__(self):
        return iter(self._resources)

    def __repr__(self) -> str:
        return f"<Client resources={list(self._resources)}>"


class ClientBuilder:
    def __init__(
        self,
        manifest: Mapping[str, Any] | Manifest | None = None,
        transport_factory: TransportClassFactory | None = None,
        configs: GlobalConfigs | None = None,
    ):
        if manifest is None:
            raise InvalidManifestError()
        if transport_factory is None:
            raise TransportNotConfiguredError()
        configs = configs if configs is not None else configs_module.configs
        if configs.task_factory is None:
            raise AsyncRuntimeNotConfiguredError()

        self.manifest = manifest if isinstance(manifest, Manifest) else Manifest(manifest, configs)
        self.transport_factory = transport_factory
        self.configs = configs

    def _transport_configs(self, transport_class: Any, descriptor: MethodDescriptor) -> dict[str, Any]:
        if self.configs.transport_impl is None:
            return dict(descriptor.transport_configs)
        transport_name = getattr(transport_class, "name", transport_class.__name__)
        return merge_configs(
            {transport_name: {"impl": self.configs.transport_impl}},
            descriptor.transport_configs,
        )

    def build(self) -> Client:
        transport_class = self.transport_factory()
        if transport_class is None:
            raise TransportNotConfiguredError()

        resources: dict[str, Resource] = {}
        for resource_name in self.manifest.resource_names():
            methods: dict[str, ResourceMethod] = {}
            for method_name in self.manifest.method_names(resource_name):
                descriptor = self.manifest.method_descriptor(resource_name, method_name)
                methods[method_name] = ResourceMethod(
                    self.manifest,
                    descriptor,
                    transport_class,
                    self._transport_configs(transport_class, descriptor),
                    self.configs,
                )
            resources[resource_name] = Resource(resource_name, methods)

        logger.debug(f"client built with resources {list(resources)}")
        return Client(self.manifest, resources)


def forge(manifest: Mapping[str, Any], configs: GlobalConfigs | None = None) -> Client:
    """Build a client from a raw manifest using the configured transport."""
    configs = configs if configs is not None else configs_module.configs
    return ClientBuilder(manifest, lambda: resolve_transport(configs.transport), configs).build()
