# どこで: `src/flowline/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: 分割数や矢印寸法、出力先をコード変更なしに調整できるようにするため。

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """flowline の実行時設定。"""

    config_path: Path | None
    segment_count: int
    min_segment_length: float
    arrow_length: float
    arrow_min_half_width: float
    output_dir: Path
    png_scale: float


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None
_PACKAGED_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Notes
    -----
    `path` を None にすると明示指定を解除し、既定の探索に戻る。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    if path is None:
        _EXPLICIT_CONFIG_PATH = None
        _CONFIG_CACHE = None
        return
    p = Path(str(path)).expanduser()
    _EXPLICIT_CONFIG_PATH = p
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    cwd = Path.cwd()
    home = Path.home()
    return (
        cwd / ".flowline" / "config.yaml",
        home / ".config" / "flowline" / "config.yaml",
    )


def _expand_path_text(text: str) -> str:
    return os.path.expandvars(os.path.expanduser(str(text)))


def _as_optional_path(value: Any) -> Path | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    return Path(_expand_path_text(s))


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _as_float(value: Any, *, key: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}")
    try:
        return float(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc


def _as_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _require(value: Any, *, key: str) -> Any:
    if value is None:
        raise RuntimeError(
            f"{key} が未設定です（同梱 default_config.yaml を確認してください）"
        )
    return value


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    try:
        import yaml  # type: ignore[import-untyped]
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(f"PyYAML を import できません: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")

    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    return _load_yaml_text(text, source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱デフォルト config をロードして dict を返す。"""

    try:
        blob = (
            resources.files("flowline")
            .joinpath("resource", "default_config.yaml")
            .read_text(encoding="utf-8")
        )
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "同梱 default_config.yaml の読み込みに失敗しました"
            "（パッケージ配布物の package-data を確認してください）"
        ) from exc

    return _load_yaml_text(blob, source="flowline/resource/default_config.yaml")


def _merge_section(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """トップレベルの section 単位で override を base に重ねた dict を返す。"""

    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_section(merged[key], value)
        else:
            merged[key] = value
    return merged


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。"""

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        payload = _merge_section(payload, _load_yaml_config(discovered_path))
    if explicit_path is not None:
        payload = _merge_section(payload, _load_yaml_config(explicit_path))

    cfg = _build_config(payload, config_path=explicit_path or discovered_path)
    _CONFIG_CACHE = cfg
    return cfg


def packaged_runtime_config() -> RuntimeConfig:
    """同梱 default_config.yaml だけから作った設定を返す（キャッシュ）。

    Notes
    -----
    探索・明示パスの config が壊れている場合の退避先として使う。
    """

    global _PACKAGED_CACHE
    if _PACKAGED_CACHE is None:
        _PACKAGED_CACHE = _build_config(_load_packaged_default_config(), config_path=None)
    return _PACKAGED_CACHE


def _build_config(payload: dict[str, Any], *, config_path: Path | None) -> RuntimeConfig:
    """マージ済み payload を検証して RuntimeConfig を組み立てる。"""

    version = _as_int(_require(payload.get("version"), key="version"), key="version")
    if version != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version}")

    render = _as_mapping(payload.get("render"), key="render")
    segment_count = _as_int(
        _require(render.get("segment_count"), key="render.segment_count"),
        key="render.segment_count",
    )
    if segment_count is None or segment_count < 1:
        raise ValueError(f"render.segment_count は 1 以上である必要があります: got={segment_count}")
    min_segment_length = _as_float(
        _require(render.get("min_segment_length"), key="render.min_segment_length"),
        key="render.min_segment_length",
    )
    if min_segment_length is None or min_segment_length <= 0:
        raise ValueError(
            f"render.min_segment_length は正の値である必要があります: got={min_segment_length}"
        )

    arrow = _as_mapping(payload.get("arrow"), key="arrow")
    arrow_length = _as_float(_require(arrow.get("length"), key="arrow.length"), key="arrow.length")
    if arrow_length is None or arrow_length <= 0:
        raise ValueError(f"arrow.length は正の値である必要があります: got={arrow_length}")
    arrow_min_half_width = _as_float(
        _require(arrow.get("min_half_width"), key="arrow.min_half_width"),
        key="arrow.min_half_width",
    )
    if arrow_min_half_width is None or arrow_min_half_width < 0:
        raise ValueError(
            f"arrow.min_half_width は 0 以上である必要があります: got={arrow_min_half_width}"
        )

    paths = _as_mapping(payload.get("paths"), key="paths")
    output_dir = _require(_as_optional_path(paths.get("output_dir")), key="paths.output_dir")

    export = _as_mapping(payload.get("export"), key="export")
    png = _as_mapping(export.get("png"), key="export.png")
    png_scale = _as_float(_require(png.get("scale"), key="export.png.scale"), key="export.png.scale")
    if png_scale is None or png_scale <= 0:
        raise ValueError(f"export.png.scale は正の値である必要があります: got={png_scale}")

    return RuntimeConfig(
        config_path=config_path,
        segment_count=int(segment_count),
        min_segment_length=float(min_segment_length),
        arrow_length=float(arrow_length),
        arrow_min_half_width=float(arrow_min_half_width),
        output_dir=output_dir,
        png_scale=float(png_scale),
    )


def output_root_dir() -> Path:
    """出力ファイルを保存する既定ルートディレクトリを返す。

    上書き順（後勝ち）:
    1) 同梱 default_config.yaml
    2) `./.flowline/config.yaml` / `~/.config/flowline/config.yaml`
    3) `set_config_path(...)` の明示パス
    """

    cfg = runtime_config()
    return Path(cfg.output_dir)


__all__ = [
    "RuntimeConfig",
    "output_root_dir",
    "packaged_runtime_config",
    "runtime_config",
    "set_config_path",
]
