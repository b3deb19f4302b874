from setuptools import setup, find_packages

setup(
    name="sttgateway",
    version="0.1.0",
    description="🎙️ One async interface for 18 speech-to-text providers ⚡️📝",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["examples*", "tests*"]),
    python_requires=">=3.10",
    install_requires=["httpx>=0.27.0", "websockets>=13.0", "pydantic>=2.0.0", "PyJWT[crypto]>=2.8.0"],
    extras_require={
        "test": ["pytest>=8.0.0", "pytest-asyncio>=0.23.0"]
    },
    license="Apache v2",
    classifiers=[
        "Programming Language :: Python :: 3"
    ]
)
