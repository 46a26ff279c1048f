"""
PLY I/O for Gaussian splat tables, built on plyfile.

Public API:
-----------
**Reading**:
- read_ply()              - Any PLY file as a PlyContainer (one section per element)
- read_ply_bytes()        - Same, from memory
- load_splat_table()      - Standard or packed-chunk PLY as one splat DataTable

**Writing**:
- write_ply()             - PlyContainer to disk (binary little endian, atomic)
- write_ply_bytes()       - PlyContainer to bytes

**Packed-chunk codec**:
- is_compressed_ply(), decompress_ply(), compress_ply()

**Utilities**:
- sh2rgb(), rgb2sh()      - DC colour conversion

Architecture:
-------------
```
loader.py          - plyfile reader, section interpretation
writer.py          - plyfile writer, atomic file replacement
compressed.py      - 256-splat chunk quantization codec
utils.py           - SH conversion utilities
```

Example Usage:
--------------
```python
from src.infrastructure.processing.ply import compress_ply, load_splat_table, write_ply

table = load_splat_table("scene.ply")
write_ply("scene.compressed.ply", compress_ply(table))
```
"""

# Public API - Codec
from src.infrastructure.processing.ply.compressed import (
    compress_ply,
    decompress_ply,
    is_compressed_ply,
)

# Public API - Loaders
from src.infrastructure.processing.ply.loader import (
    container_to_table,
    load_splat_table,
    read_ply,
    read_ply_bytes,
)

# Public API - Writers
from src.infrastructure.processing.ply.writer import (
    table_to_container,
    write_bytes_atomic,
    write_ply,
    write_ply_bytes,
)

# Public API - Utilities
from src.infrastructure.processing.ply.utils import (
    SH_C0,
    rgb2sh,
    sh2rgb,
)

__all__ = [
    # Codec
    "compress_ply",
    "decompress_ply",
    "is_compressed_ply",
    # Loaders
    "container_to_table",
    "load_splat_table",
    "read_ply",
    "read_ply_bytes",
    # Writers
    "table_to_container",
    "write_bytes_atomic",
    "write_ply",
    "write_ply_bytes",
    # Utilities
    "SH_C0",
    "rgb2sh",
    "sh2rgb",
]
