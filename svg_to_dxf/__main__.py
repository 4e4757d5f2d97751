"""Package entry point for ``python -m svg_to_dxf``.

WHY: Users run the converter as ``python -m svg_to_dxf drawing.svg``
without installing the console script.

HOW: Delegates to the CLI's main() function.
"""

if __name__ == "__main__":
    from svg_to_dxf.cli import main
    main()
