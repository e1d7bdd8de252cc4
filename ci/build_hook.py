"""Hatch build hook for bundling the native tokenizer engine library."""

import os
import platform
import shutil
import subprocess
import sys
from pathlib import Path

from hatchling.builders.hooks.plugin.interface import BuildHookInterface


class EngineBuildHook(BuildHookInterface):
    """Build hook that places the engine library inside the package before packaging.

    Sources, in order:

    1. ``TOKBRIDGE_LIB_PATH``: a prebuilt library file, copied as is.
    2. ``TOKBRIDGE_ENGINE_DIR``: a Rust crate built with ``cargo build --release``.

    With neither set the wheel ships without a library, and tokbridge resolves
    one at runtime from the environment or the system loader path.
    """

    PLUGIN_NAME = "engine-build"

    def initialize(self, version: str, build_data: dict) -> None:
        """Copy or build the engine library before packaging."""
        if self.target_name == "sdist":
            # Don't bundle for sdist - just include source
            return

        package_root = Path(self.root)
        lib_name = self._get_lib_name()
        target_lib = package_root / "tokbridge" / lib_name

        prebuilt = os.environ.get("TOKBRIDGE_LIB_PATH")
        if prebuilt:
            source = Path(prebuilt)
            if not source.exists():
                raise RuntimeError(f"TOKBRIDGE_LIB_PATH points to missing file: {source}")
            shutil.copy2(source, target_lib)
            self._log(f"Copied prebuilt {source.name} to tokbridge/")
        elif os.environ.get("TOKBRIDGE_ENGINE_DIR"):
            engine_dir = Path(os.environ["TOKBRIDGE_ENGINE_DIR"])
            built_lib = self._run_build(engine_dir) / lib_name
            if not built_lib.exists():
                raise RuntimeError(f"Build failed: {built_lib} not found")
            shutil.copy2(built_lib, target_lib)
            self._log(f"Copied {lib_name} to tokbridge/")
        elif target_lib.exists():
            self._log(f"Using existing {lib_name}")
        else:
            self._log("No engine library to bundle; it will be resolved at runtime")
            return

        build_data["pure_python"] = False
        build_data["infer_tag"] = True

    def _get_lib_name(self) -> str:
        """Get platform-specific library name."""
        system = platform.system()
        if system == "Darwin":
            return "libhf_tokenizer.dylib"
        elif system == "Windows":
            return "hf_tokenizer.dll"
        else:
            return "libhf_tokenizer.so"

    def _run_build(self, engine_dir: Path) -> Path:
        """Run cargo in ``engine_dir`` and return the output directory."""
        if not (engine_dir / "Cargo.toml").exists():
            raise RuntimeError(f"No Cargo.toml in TOKBRIDGE_ENGINE_DIR ({engine_dir})")
        if not shutil.which("cargo"):
            raise RuntimeError("Cargo not found. Install Rust from https://rustup.rs/")

        self._log("Building engine library with cargo...")
        subprocess.run(
            ["cargo", "build", "--release"],
            cwd=engine_dir,
            env=os.environ.copy(),
            check=True,
        )
        return engine_dir / "target" / "release"

    def _log(self, msg: str) -> None:
        """Log build progress."""
        print(f"[engine-build] {msg}", file=sys.stderr)
