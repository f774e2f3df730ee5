from setuptools import setup, find_packages


setup(
    name="vehicle-battery-sim",
    version="0.1.0",
    description="Single-vehicle battery simulator streaming live state over WebSockets",
    packages=find_packages(include=["services*", "libs*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.110.0",
        "requests>=2.31.0",
        "uvicorn[standard]>=0.24.0",
        "websockets>=12.0",
    ],
    extras_require={
        "test": [
            "httpx>=0.27.0",
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
