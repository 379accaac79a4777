"""
Pod Template Builder

Assembles an Elasticsearch pod template on top of the user-provided one.
Fields set by the user always take precedence: every ``with_*`` operation only
fills in what the template leaves unset, or appends entries the template
does not already declare.

The builder is immutable. Each ``with_*`` operation returns a new builder
holding its own copy of the template, so a partially built state can be
shared between replicas without aliasing.
"""

import copy
from typing import Callable, Dict, Iterable, List, Optional

from kubernetes import client
from kubernetes.utils import parse_quantity

from .labels import set_template_hash_label


def _merge_missing(target, source):
    """Fill the unset attributes of a Kubernetes model with the source's."""
    for attribute in target.openapi_types:
        if getattr(target, attribute) is None and getattr(source, attribute) is not None:
            setattr(target, attribute, copy.deepcopy(getattr(source, attribute)))
    return target


def _main_container(template: client.V1PodTemplateSpec, container_name: str) -> client.V1Container:
    for container in template.spec.containers:
        if container.name == container_name:
            return container
    raise LookupError(f"Container {container_name} missing from pod template")


class PodTemplateBuilder:
    """
    Immutable builder for the pod template of a single Elasticsearch node.

    Usage:
        builder = (PodTemplateBuilder(node_group.pod_template, "elasticsearch")
                   .with_docker_image(None, "docker.elastic.co/elasticsearch/elasticsearch:7.2.0")
                   .with_ports(default_container_ports()))
        template = builder.pod_template
    """

    def __init__(self, pod_template: Optional[client.V1PodTemplateSpec], container_name: str):
        template = copy.deepcopy(pod_template) if pod_template is not None else client.V1PodTemplateSpec()
        if template.metadata is None:
            template.metadata = client.V1ObjectMeta()
        if template.spec is None:
            # containers is required by the model, start with an empty list
            template.spec = client.V1PodSpec(containers=[])
        if template.spec.containers is None:
            template.spec.containers = []
        if not any(c.name == container_name for c in template.spec.containers):
            template.spec.containers.append(client.V1Container(name=container_name))

        self._template = template
        self.container_name = container_name

    @classmethod
    def _wrap(cls, template: client.V1PodTemplateSpec, container_name: str) -> "PodTemplateBuilder":
        builder = cls.__new__(cls)
        builder._template = template
        builder.container_name = container_name
        return builder

    def _evolve(
        self,
        mutate: Callable[[client.V1PodTemplateSpec, client.V1Container], None]
    ) -> "PodTemplateBuilder":
        template = copy.deepcopy(self._template)
        mutate(template, _main_container(template, self.container_name))
        return PodTemplateBuilder._wrap(template, self.container_name)

    @property
    def pod_template(self) -> client.V1PodTemplateSpec:
        """A copy of the assembled template."""
        return copy.deepcopy(self._template)

    @property
    def container(self) -> client.V1Container:
        """A copy of the Elasticsearch container."""
        return copy.deepcopy(_main_container(self._template, self.container_name))

    # =========================================================================
    # Container
    # =========================================================================

    def with_docker_image(self, custom_image: Optional[str], default_image: str) -> "PodTemplateBuilder":
        """
        Set the container image.

        The custom image (from the cluster spec) wins, then the image set in the
        pod template, then the default image.
        """
        def mutate(template, container):
            if custom_image:
                container.image = custom_image
            elif not container.image:
                container.image = default_image
        return self._evolve(mutate)

    def with_memory_request(self, minimum: str) -> "PodTemplateBuilder":
        """
        Request at least ``minimum`` memory when the template requests none.

        A memory request set in the template is kept as is. If the template sets
        a memory limit lower than the minimum, the limit is requested instead,
        since a request cannot exceed its limit.
        """
        def mutate(template, container):
            resources = container.resources or client.V1ResourceRequirements()
            requests = dict(resources.requests or {})
            limits = resources.limits or {}
            if "memory" not in requests:
                request = minimum
                limit = limits.get("memory")
                if limit is not None and parse_quantity(limit) < parse_quantity(minimum):
                    request = limit
                requests["memory"] = request
            resources.requests = requests
            container.resources = resources
        return self._evolve(mutate)

    def with_ports(self, ports: Iterable[client.V1ContainerPort]) -> "PodTemplateBuilder":
        """Append ports not already declared (by name) in the template."""
        ports = list(ports)

        def mutate(template, container):
            existing = list(container.ports or [])
            names = {p.name for p in existing}
            for port in ports:
                if port.name not in names:
                    existing.append(copy.deepcopy(port))
            container.ports = existing
        return self._evolve(mutate)

    def with_readiness_probe(self, probe: client.V1Probe) -> "PodTemplateBuilder":
        def mutate(template, container):
            if container.readiness_probe is None:
                container.readiness_probe = copy.deepcopy(probe)
        return self._evolve(mutate)

    def with_env(self, *env: client.V1EnvVar) -> "PodTemplateBuilder":
        """Append env vars not already declared (by name) in the template."""
        def mutate(template, container):
            existing = list(container.env or [])
            names = {e.name for e in existing}
            for var in env:
                if var.name not in names:
                    existing.append(copy.deepcopy(var))
                    names.add(var.name)
            container.env = existing
        return self._evolve(mutate)

    def with_volume_mounts(self, *mounts: client.V1VolumeMount) -> "PodTemplateBuilder":
        """Append volume mounts whose mount path is not already used in the template."""
        def mutate(template, container):
            existing = list(container.volume_mounts or [])
            paths = {m.mount_path for m in existing}
            for mount in mounts:
                if mount.mount_path not in paths:
                    existing.append(copy.deepcopy(mount))
                    paths.add(mount.mount_path)
            container.volume_mounts = existing
        return self._evolve(mutate)

    # =========================================================================
    # Pod
    # =========================================================================

    def with_termination_grace_period(self, seconds: int) -> "PodTemplateBuilder":
        def mutate(template, container):
            if template.spec.termination_grace_period_seconds is None:
                template.spec.termination_grace_period_seconds = seconds
        return self._evolve(mutate)

    def with_affinity(self, affinity: client.V1Affinity) -> "PodTemplateBuilder":
        def mutate(template, container):
            if template.spec.affinity is None:
                template.spec.affinity = copy.deepcopy(affinity)
        return self._evolve(mutate)

    def with_volumes(self, *volumes: client.V1Volume) -> "PodTemplateBuilder":
        """Append volumes not already declared (by name) in the template."""
        def mutate(template, container):
            existing = list(template.spec.volumes or [])
            names = {v.name for v in existing}
            for volume in volumes:
                if volume.name not in names:
                    existing.append(copy.deepcopy(volume))
                    names.add(volume.name)
            template.spec.volumes = existing
        return self._evolve(mutate)

    def with_init_containers(self, *init_containers: client.V1Container) -> "PodTemplateBuilder":
        """
        Prepend the given init containers to the ones of the template.

        An init container the template already declares (by name) is kept at
        its new position, with the template's fields taking precedence and the
        given container filling in the rest.
        """
        def mutate(template, container):
            remaining = list(template.spec.init_containers or [])
            prepended: List[client.V1Container] = []
            for init_container in init_containers:
                index = next(
                    (i for i, c in enumerate(remaining) if c.name == init_container.name), None
                )
                if index is None:
                    prepended.append(copy.deepcopy(init_container))
                else:
                    prepended.append(_merge_missing(remaining.pop(index), init_container))
            template.spec.init_containers = prepended + remaining
        return self._evolve(mutate)

    def with_init_container_defaults(self) -> "PodTemplateBuilder":
        """Init containers without an image run the Elasticsearch image."""
        def mutate(template, container):
            for init_container in (template.spec.init_containers or []):
                if not init_container.image:
                    init_container.image = container.image
        return self._evolve(mutate)

    def with_labels(self, labels: Dict[str, str], overwrite: bool = False) -> "PodTemplateBuilder":
        """Add labels, without overriding those set in the template unless ``overwrite``."""
        def mutate(template, container):
            if overwrite:
                merged = dict(template.metadata.labels or {})
                merged.update(labels)
            else:
                merged = dict(labels)
                merged.update(template.metadata.labels or {})
            template.metadata.labels = merged
        return self._evolve(mutate)

    def with_template_hash(self) -> "PodTemplateBuilder":
        """Label the template with the hash of its own content."""
        def mutate(template, container):
            template.metadata.labels = set_template_hash_label(template.metadata.labels, template)
        return self._evolve(mutate)
