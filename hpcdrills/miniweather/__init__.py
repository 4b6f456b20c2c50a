"""Sub-package reserved for an atmospheric flow model; it holds no modules yet."""