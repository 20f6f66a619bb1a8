"""Setup configuration for geminiops."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="geminiops",
    version="0.1.0",
    description="Command-line utilities for Gemini text, image, SVG and segmentation generation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "gemini-ops=geminiops.cli:main",
            "ask-gemini=geminiops.cli:ask_main",
            "gemini-image=geminiops.cli:image_main",
            "gemini-upscale=geminiops.cli:upscale_main",
            "gemini-edit=geminiops.cli:edit_main",
            "gemini-svg=geminiops.cli:svg_main",
            "gemini-segment=geminiops.cli:segment_main",
        ]
    },
    install_requires=[
        "google-genai>=1.50",
        "httpx>=0.27",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
)
