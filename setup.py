import os
import os.path
import setuptools # type: ignore

root_path = os.path.dirname(__file__)

long_description = ""
if os.path.exists(os.path.join(root_path, "README.md")):
    with open(os.path.join(root_path, "README.md"), "r") as fh:
        long_description = fh.read()

setuptools.setup(
    name="rulebard",
    version="0.1.0",
    description="rulebard: contextual rule selection for dialogue, animation and events in games.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(where="src"),
    package_dir={'': 'src'},

    package_data={
        'rulebard': ['py.typed'],
        'rulebard.data': ['*.toml'],
    },
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    install_requires=[
        "numpy",
        "msgpack",
        "toml",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires='>=3.10',
)
