"""
Scene Graph

Path-addressable node hierarchy used to resolve curve bindings to glTF
node indices, morph targets and rest pose values.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pygltflib
from pyrr import Quaternion, Vector3

from ..animation.animation import PropertyTarget
from ..config.settings import DEFAULT_MORPH_WEIGHT, DEFAULT_ROTATION, DEFAULT_SCALE, DEFAULT_TRANSLATION

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


class SceneNode:
    """
    A node in the exported scene.

    Each node has:
    - Its glTF node index
    - Rest pose (local translation/rotation/scale)
    - Morph target names of its mesh, if any
    """

    def __init__(
        self,
        name: str,
        index: int,
        parent: Optional['SceneNode'] = None
    ):
        """
        Initialize a node.

        Args:
            name: Node name (one path segment)
            index: glTF node index
            parent: Parent node (None for top-level nodes)
        """
        self.name = name
        self.index = index
        self.parent = parent
        self.children: List['SceneNode'] = []

        # Rest pose, used for axes no curve animates
        self.base_translation = Vector3(DEFAULT_TRANSLATION)
        self.base_rotation = Quaternion(DEFAULT_ROTATION)  # pyrr stores x, y, z, w
        self.base_scale = Vector3(DEFAULT_SCALE)

        self.morph_target_names: List[str] = []
        self.base_weights: List[float] = []

    def add_child(self, child: 'SceneNode'):
        """Add a child node to this node's hierarchy."""
        self.children.append(child)
        child.parent = self

    @property
    def morph_target_count(self) -> int:
        return len(self.morph_target_names)

    def __repr__(self):
        return f"SceneNode(name='{self.name}', index={self.index}, children={len(self.children)})"


class SceneGraph:
    """
    Hierarchical node lookup for an export root.

    Paths are relative to the root node and use ``/`` between names, so
    ``""`` is the root itself and ``"Armature/Hips"`` a grandchild. Without
    a root node, paths start at the top-level nodes.
    """

    def __init__(self, name: str = "Scene"):
        """
        Initialize scene graph.

        Args:
            name: Scene name for debugging
        """
        self.name = name
        self.nodes: List[SceneNode] = []
        self.root: Optional[SceneNode] = None
        self._by_index: Dict[int, SceneNode] = {}
        self._by_path: Dict[str, SceneNode] = {}

    def add_node(
        self,
        name: str,
        parent: Optional[SceneNode] = None,
        index: Optional[int] = None,
        morph_targets: Sequence[str] = (),
    ) -> SceneNode:
        """
        Add a node to the graph.

        Args:
            name: Node name
            parent: Parent node (None for top-level)
            index: glTF node index (next free index if None)
            morph_targets: Morph target names of the node's mesh

        Returns:
            The new node
        """
        if index is None:
            index = len(self.nodes)
        if index in self._by_index:
            raise ValueError(f"Duplicate node index {index}")

        node = SceneNode(name, index)
        if parent is not None:
            parent.add_child(node)
        node.morph_target_names = list(morph_targets)
        node.base_weights = [DEFAULT_MORPH_WEIGHT] * len(node.morph_target_names)

        self.nodes.append(node)
        self._by_index[index] = node
        self._register_path(node)
        return node

    def set_root(self, node: Optional[SceneNode]):
        """Make binding paths relative to ``node``."""
        self.root = node
        self._rebuild_paths()

    def get_node(self, index: int) -> Optional[SceneNode]:
        return self._by_index.get(index)

    def path_of(self, node: SceneNode) -> Optional[str]:
        """Binding path of a node, None if it lies outside the root."""
        parts = []
        current = node
        while current is not None and current is not self.root:
            parts.append(current.name)
            current = current.parent
        if self.root is not None and current is None:
            return None
        return PATH_SEPARATOR.join(reversed(parts))

    def _register_path(self, node: SceneNode):
        path = self.path_of(node)
        # First registration wins for duplicate sibling names
        if path is not None and path not in self._by_path:
            self._by_path[path] = node

    def _rebuild_paths(self):
        self._by_path = {}
        for node in self.nodes:
            self._register_path(node)

    # Collaborator interface -------------------------------------------------

    def resolve_node(self, path: str) -> Optional[int]:
        """
        Resolve a binding path to a node index.

        Args:
            path: Slash-separated path relative to the root

        Returns:
            glTF node index, or None if the path names no node
        """
        node = self._by_path.get(path.strip(PATH_SEPARATOR))
        return node.index if node is not None else None

    def morph_target_count(self, node_index: int) -> int:
        node = self._by_index.get(node_index)
        return node.morph_target_count if node is not None else 0

    def morph_target_index(self, node_index: int, name: str) -> Optional[int]:
        node = self._by_index.get(node_index)
        if node is None or name not in node.morph_target_names:
            return None
        return node.morph_target_names.index(name)

    def rest_values(self, node_index: int, target: PropertyTarget) -> Optional[Tuple[float, ...]]:
        """
        Rest value vector of a node for an animated property.

        Rotation is returned as glTF (x, y, z, w).
        """
        node = self._by_index.get(node_index)
        if node is None:
            return None
        if target == PropertyTarget.TRANSLATION:
            return tuple(float(v) for v in node.base_translation)
        if target == PropertyTarget.ROTATION:
            return tuple(float(v) for v in node.base_rotation)
        if target == PropertyTarget.SCALE:
            return tuple(float(v) for v in node.base_scale)
        if target == PropertyTarget.BLEND_SHAPE:
            return tuple(float(v) for v in node.base_weights)
        return None

    # glTF construction ------------------------------------------------------

    @classmethod
    def from_gltf(cls, gltf: pygltflib.GLTF2, root: Optional[str] = None) -> 'SceneGraph':
        """
        Build a scene graph from a glTF document.

        Args:
            gltf: Loaded glTF document
            root: Name of the node binding paths are relative to
                  (None: paths start at top-level nodes)

        Returns:
            SceneGraph whose node indices match the document's
        """
        graph = cls(name=f"glTF ({len(gltf.nodes)} nodes)")

        parent_map: Dict[int, int] = {}
        for idx, node in enumerate(gltf.nodes):
            for child_idx in node.children or []:
                parent_map[child_idx] = idx

        # Create nodes parents-first so add_child sees the parent object
        created: Dict[int, SceneNode] = {}

        def create(idx: int) -> SceneNode:
            if idx in created:
                return created[idx]
            parent = create(parent_map[idx]) if idx in parent_map else None
            gltf_node = gltf.nodes[idx]
            scene_node = graph.add_node(
                gltf_node.name if gltf_node.name else f"Node_{idx}",
                parent=parent,
                index=idx,
                morph_targets=_morph_target_names(gltf, gltf_node),
            )
            _apply_rest_pose(gltf, gltf_node, scene_node)
            created[idx] = scene_node
            return scene_node

        for idx in range(len(gltf.nodes)):
            create(idx)

        if root is not None:
            matches = [n for n in graph.nodes if n.name == root]
            if not matches:
                raise ValueError(f"Root node '{root}' not found in glTF document")
            graph.set_root(matches[0])

        return graph

    def __repr__(self):
        root = self.root.name if self.root is not None else None
        return f"SceneGraph(name='{self.name}', nodes={len(self.nodes)}, root={root!r})"


def _morph_target_names(gltf: pygltflib.GLTF2, node: pygltflib.Node) -> List[str]:
    """Morph target names from ``mesh.extras.targetNames`` (index strings if absent)."""
    if node.mesh is None:
        return []
    mesh = gltf.meshes[node.mesh]
    count = max((len(p.targets or []) for p in mesh.primitives), default=0)
    if count == 0:
        return []

    extras = mesh.extras if isinstance(mesh.extras, dict) else {}
    names = list(extras.get("targetNames") or [])
    if len(names) != count:
        if names:
            logger.warning("Mesh '%s' has %d morph targets but %d target names",
                           mesh.name, count, len(names))
        names = [str(i) for i in range(count)]
    return names


def _apply_rest_pose(gltf: pygltflib.GLTF2, gltf_node: pygltflib.Node, scene_node: SceneNode):
    if gltf_node.translation is not None:
        scene_node.base_translation = Vector3(gltf_node.translation)
    if gltf_node.rotation is not None:
        scene_node.base_rotation = Quaternion(gltf_node.rotation)
    if gltf_node.scale is not None:
        scene_node.base_scale = Vector3(gltf_node.scale)
    if gltf_node.matrix is not None and gltf_node.translation is None:
        # Column-major: elements 12..14 hold the translation
        matrix = np.array(gltf_node.matrix, dtype='f4').reshape(4, 4)
        scene_node.base_translation = Vector3(matrix[3, :3])

    # pygltflib nodes carry no weights field, only meshes do
    weights = getattr(gltf_node, "weights", None)
    if weights is None and gltf_node.mesh is not None:
        weights = gltf.meshes[gltf_node.mesh].weights
    if weights and len(weights) == scene_node.morph_target_count:
        scene_node.base_weights = [float(w) for w in weights]
