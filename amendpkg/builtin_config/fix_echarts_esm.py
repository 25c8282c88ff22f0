"""Make echarts and zrender loadable as native ES modules.

Older releases of both packages ship ESM sources without ``"type": "module"``
and without an ``exports`` map. Releases that already declare ``exports``
are left alone.
"""

ZRENDER_LEGACY_ENTRIES = [
    "lib/canvas/canvas", "lib/svg/svg", "lib/vml/vml", "lib/canvas/Painter",
    "lib/svg/Painter", "lib/svg/patch", "lib/Storage", "lib/core/util",
    "lib/core/env", "lib/core/Transformable", "lib/core/BoundingRect",
    "lib/core/vector", "lib/core/bbox", "lib/contain/polygon", "lib/tool/color",
    "lib/graphic/LinearGradient", "lib/graphic/RadialGradient",
]

ECHARTS_TOP_LEVEL = [
    "core", "charts", "components", "features", "renderers",
    "index.blank", "index.common", "index.simple", "index",
]

ECHARTS_DATA_TOOL = ["gexf", "prepareBoxplotData"]

ECHARTS_CHARTS = [
    "bar", "boxplot", "candlestick", "custom", "effectScatter", "funnel",
    "gauge", "graph", "heatmap", "line", "lines", "map", "parallel",
    "pictorialBar", "pie", "radar", "sankey", "scatter", "sunburst",
    "themeRiver", "tree", "treemap",
]

ECHARTS_COMPONENTS = [
    "aria", "axisPointer", "brush", "calendar", "dataZoom", "dataZoomInside",
    "dataZoomSelect", "dataZoomSlider", "dataset", "geo", "graphic", "grid",
    "gridSimple", "legend", "legendPlain", "legendScroll", "markArea",
    "markLine", "markPoint", "parallel", "polar", "radar", "singleAxis",
    "timeline", "title", "toolbox", "tooltip", "transform", "visualMap",
    "visualMapContinuous", "visualMapPiecewise",
]

ECHARTS_DIST = [
    "echarts.common", "echarts.common.min", "echarts.esm", "echarts.esm.min",
    "echarts", "echarts.min", "echarts.simple", "echarts.simple.min",
    "extension/bmap", "extension/bmap.min",
    "extension/dataTool", "extension/dataTool.min",
]

COMMONJS_DIRS_ZRENDER = ["dist", "build"]
COMMONJS_DIRS_ECHARTS = ["dist", "build", "i18n", "theme"]


def _with_and_without_ext(entries):
    # webpack 5.0 - 5.12 understands "exports" but not wildcards.
    exports = {}
    for entry in entries:
        exports[f"./{entry}"] = f"./{entry}.js"
        exports[f"./{entry}.js"] = f"./{entry}.js"
    return exports


def _mark_commonjs(pkg, dirs):
    for name in dirs:
        pkg.ensure_sub_document([name], lambda sub: sub.set_attribute("type", "commonjs"))


def amend_zrender(pkg):
    if pkg.get_attribute_clone("exports"):
        return
    exports = {
        ".": {
            "types": "./index.d.ts",
            "require": "./dist/zrender.js",
            "import": "./index.js",
        },
    }
    # Kept for backward compatibility with deep imports.
    exports.update({f"./{entry}": f"./{entry}.js" for entry in ZRENDER_LEGACY_ENTRIES})
    exports["./*"] = "./*"

    pkg.set_attribute("type", "module")
    pkg.set_attribute("exports", exports)
    _mark_commonjs(pkg, COMMONJS_DIRS_ZRENDER)


def amend_echarts(pkg):
    if pkg.get_attribute_clone("exports"):
        return
    exports = {
        ".": {
            "types": "./index.d.ts",
            "import": "./index.js",
            "require": "./dist/echarts.js",
        },
    }
    exports.update(_with_and_without_ext(ECHARTS_TOP_LEVEL))
    exports["./theme/*"] = "./theme/*"
    exports["./i18n/*"] = "./i18n/*"
    exports["./ssr/client/index"] = {
        "types": "./ssr/client/index.d.ts",
        "import": "./ssr/client/index.js",
        "require": "./ssr/client/dist/index.js",
    }
    exports["./extension/dataTool"] = "./extension/dataTool/index.js"
    exports.update(_with_and_without_ext(["extension/dataTool/index"]))
    exports.update(_with_and_without_ext(f"extension/dataTool/{n}" for n in ECHARTS_DATA_TOOL))
    exports.update(_with_and_without_ext(["extension/bmap/bmap", "lib/echarts", "lib/extension"]))
    exports.update(_with_and_without_ext(f"lib/chart/{n}" for n in ECHARTS_CHARTS))
    exports.update(_with_and_without_ext(f"lib/component/{n}" for n in ECHARTS_COMPONENTS))
    exports.update(_with_and_without_ext(f"dist/{n}" for n in ECHARTS_DIST))
    exports["./*"] = "./*"

    pkg.set_attribute("type", "module")
    pkg.set_attribute("exports", exports)
    _mark_commonjs(pkg, COMMONJS_DIRS_ECHARTS)


AMENDERS = {
    "zrender": amend_zrender,
    "echarts": amend_echarts,
}
