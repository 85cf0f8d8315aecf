"""Core logic of the DAP sync application.

- device: on-device layout, file formats and mount detection
- sync: selection resolution, statistics merge, file transfer, orchestration
- library: importing local audio files into the library store
"""

__all__: list[str] = []
