"""Render options and scene descriptions as plain dataclasses.

RenderConfig carries the switches that change how a frame is traced.
SceneConfig is a dictionary form of a Scene plus Camera, suitable for JSON
serialization by the caller. No file I/O happens here.

Scene description format::

    {
        "meshes": [
            {
                "triangles": [[[0, 0, 0], [0, 1, 0], [1, 1, 0]]],
                "translation": [0, 0, 0],
                "rotation": {"pitch": 0, "yaw": 0, "roll": 0},
            }
        ],
        "camera": {
            "origin": [0, 0, -1],
            "rotation": {"pitch": 0, "yaw": 0, "roll": 0},
            "fov": 90,
            "perspective": True,
        },
    }

Example:
    >>> from meshtracer.scene.config import SceneConfig
    >>> config = SceneConfig.from_dict(data)
    >>> scene, camera = config.to_scene(), config.to_camera()
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from meshtracer.camera.camera import DEFAULT_FOV, Camera
from meshtracer.errors import SceneConfigError
from meshtracer.geometry.mesh import Mesh
from meshtracer.geometry.primitives import Point3, Rotation, Transform
from meshtracer.geometry.triangle import Triangle
from meshtracer.scene.intersection import HitPolicy, SpatialIndexKind
from meshtracer.scene.scene import Scene

# Rows rendered per kernel launch
DEFAULT_ROW_BATCH_SIZE = 64


def _enum_value(enum_cls, value):
    """Accept an enum member, its integer value, or its lowercase name."""
    if isinstance(value, str):
        try:
            return enum_cls[value.upper()]
        except KeyError:
            raise SceneConfigError(f"Unknown {enum_cls.__name__}: {value!r}") from None
    try:
        return enum_cls(value)
    except ValueError:
        raise SceneConfigError(f"Unknown {enum_cls.__name__}: {value!r}") from None


@dataclass(frozen=True)
class RenderConfig:
    """Options controlling how a frame is rendered.

    Attributes:
        hit_policy: Which hit wins when a ray crosses several triangles.
        spatial_index: Traversal strategy (linear scan or BVH).
        apply_rotation: Apply mesh and camera rotations. Off by default, in
            which case only translations and camera origin are used.
        cull_backfaces: Ignore triangles facing away from the ray.
        row_batch_size: Rows rendered per kernel launch. Cancellation and
            progress callbacks happen between batches.

    Raises:
        ValueError: If row_batch_size is not a positive integer.
    """

    hit_policy: HitPolicy = HitPolicy.FIRST_HIT
    spatial_index: SpatialIndexKind = SpatialIndexKind.LINEAR_SCAN
    apply_rotation: bool = False
    cull_backfaces: bool = False
    row_batch_size: int = DEFAULT_ROW_BATCH_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "hit_policy", HitPolicy(self.hit_policy))
        object.__setattr__(self, "spatial_index", SpatialIndexKind(self.spatial_index))
        if isinstance(self.row_batch_size, bool) or not isinstance(self.row_batch_size, int):
            raise ValueError(f"row_batch_size must be an integer, got {self.row_batch_size!r}")
        if self.row_batch_size < 1:
            raise ValueError(f"row_batch_size must be positive, got {self.row_batch_size}")

    def to_dict(self) -> dict[str, Any]:
        """Export the options to a dictionary (for JSON serialization)."""
        return {
            "hit_policy": self.hit_policy.name.lower(),
            "spatial_index": self.spatial_index.name.lower(),
            "apply_rotation": self.apply_rotation,
            "cull_backfaces": self.cull_backfaces,
            "row_batch_size": self.row_batch_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Load options from a dictionary. Missing keys take their defaults.

        Raises:
            SceneConfigError: If a value cannot be interpreted.
        """
        try:
            return cls(
                hit_policy=_enum_value(HitPolicy, data.get("hit_policy", HitPolicy.FIRST_HIT)),
                spatial_index=_enum_value(
                    SpatialIndexKind, data.get("spatial_index", SpatialIndexKind.LINEAR_SCAN)
                ),
                apply_rotation=bool(data.get("apply_rotation", False)),
                cull_backfaces=bool(data.get("cull_backfaces", False)),
                row_batch_size=data.get("row_batch_size", DEFAULT_ROW_BATCH_SIZE),
            )
        except (TypeError, ValueError, AttributeError) as e:
            if isinstance(e, SceneConfigError):
                raise
            raise SceneConfigError(f"Invalid render configuration: {e}") from e


def _point(value: Any, what: str) -> Point3:
    try:
        if len(value) != 3:
            raise SceneConfigError(f"{what} must have 3 coordinates, got {len(value)}")
        return Point3(float(value[0]), float(value[1]), float(value[2]))
    except (TypeError, ValueError) as e:
        if isinstance(e, SceneConfigError):
            raise
        raise SceneConfigError(f"{what} must be a sequence of 3 numbers, got {value!r}") from e


def _rotation(value: Any, what: str) -> Rotation:
    if value is None:
        return Rotation()
    if not isinstance(value, dict):
        raise SceneConfigError(f"{what} must be a dict with pitch, yaw, roll, got {value!r}")
    try:
        return Rotation(
            pitch=float(value.get("pitch", 0.0)),
            yaw=float(value.get("yaw", 0.0)),
            roll=float(value.get("roll", 0.0)),
        )
    except (TypeError, ValueError) as e:
        raise SceneConfigError(f"{what} angles must be numbers, got {value!r}") from e


def _rotation_dict(rotation: Rotation) -> dict[str, float]:
    return {"pitch": rotation.pitch, "yaw": rotation.yaw, "roll": rotation.roll}


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        meshes: List of mesh configurations.
        camera: Camera configuration.
    """

    meshes: list[dict[str, Any]] = field(default_factory=list)
    camera: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_scene(cls, scene: Scene, camera: Camera) -> "SceneConfig":
        """Export a scene and camera to a configuration object."""
        config = cls()

        for mesh in scene.meshes:
            mesh_config = {
                "triangles": [
                    [list(v.as_tuple()) for v in tri.vertices()] for tri in mesh.triangles
                ],
                "translation": list(mesh.transform.translation.as_tuple()),
                "rotation": _rotation_dict(mesh.transform.rotation),
            }
            config.meshes.append(mesh_config)

        config.camera = {
            "origin": list(camera.origin.as_tuple()),
            "rotation": _rotation_dict(camera.rotation),
            "fov": camera.fov,
            "perspective": camera.perspective,
        }
        return config

    def to_scene(self) -> Scene:
        """Build the Scene described by this configuration.

        Raises:
            SceneConfigError: If a mesh entry is malformed.
        """
        meshes = []
        for i, mesh_config in enumerate(self.meshes):
            if not isinstance(mesh_config, dict):
                raise SceneConfigError(f"Mesh {i} must be a dict, got {type(mesh_config).__name__}")

            triangles = []
            for j, tri_config in enumerate(mesh_config.get("triangles", [])):
                try:
                    if len(tri_config) != 3:
                        raise SceneConfigError(
                            f"Mesh {i} triangle {j} must have 3 vertices, got {len(tri_config)}"
                        )
                except TypeError as e:
                    raise SceneConfigError(f"Mesh {i} triangle {j} must be a list of vertices") from e
                v1, v2, v3 = (_point(v, f"Mesh {i} triangle {j} vertex") for v in tri_config)
                triangles.append(Triangle(v1, v2, v3))

            transform = Transform(
                rotation=_rotation(mesh_config.get("rotation"), f"Mesh {i} rotation"),
                translation=_point(mesh_config.get("translation", [0, 0, 0]), f"Mesh {i} translation"),
            )
            meshes.append(Mesh(tuple(triangles), transform))

        return Scene(tuple(meshes))

    def to_camera(self) -> Camera:
        """Build the Camera described by this configuration.

        Raises:
            SceneConfigError: If the camera entry is malformed.
            InvalidFieldOfViewError: If the field of view is out of range.
        """
        if not isinstance(self.camera, dict):
            raise SceneConfigError(f"Camera must be a dict, got {type(self.camera).__name__}")
        return Camera(
            origin=_point(self.camera.get("origin", [0, 0, 0]), "Camera origin"),
            rotation=_rotation(self.camera.get("rotation"), "Camera rotation"),
            fov=self.camera.get("fov", DEFAULT_FOV),
            perspective=bool(self.camera.get("perspective", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration to a dictionary (for JSON serialization)."""
        return {"meshes": copy.deepcopy(self.meshes), "camera": copy.deepcopy(self.camera)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneConfig":
        """Load a configuration from a dictionary.

        Args:
            data: Dictionary with 'meshes' and 'camera' keys.

        Raises:
            SceneConfigError: If the top-level structure is wrong.
        """
        if not isinstance(data, dict):
            raise SceneConfigError(f"Scene description must be a dict, got {type(data).__name__}")
        meshes = data.get("meshes", [])
        camera = data.get("camera", {})
        if not isinstance(meshes, list):
            raise SceneConfigError("'meshes' must be a list")
        if not isinstance(camera, dict):
            raise SceneConfigError("'camera' must be a dict")
        return cls(meshes=copy.deepcopy(meshes), camera=copy.deepcopy(camera))
