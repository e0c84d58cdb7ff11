# Overview: Sample catalog used by `flask catalog seed` for demos and local development.

SAMPLE_PRODUCTS = [
    # Networking
    {
        "name": "Cat6 Ethernet Cable 10m",
        "description": "High-quality Cat6 ethernet cable for reliable network connections",
        "sku": "NET-CAT6-10M",
        "category": "networking",
        "price": "15.99",
        "cost_price": "8.50",
        "stock_quantity": 150,
        "low_stock_threshold": 20,
    },
    {
        "name": "TP-Link 8-Port Gigabit Switch",
        "description": "Desktop network switch with 8 gigabit ports",
        "sku": "NET-SW-8P",
        "category": "networking",
        "price": "45.99",
        "cost_price": "28.00",
        "stock_quantity": 35,
        "low_stock_threshold": 10,
    },
    {
        "name": "Ubiquiti UniFi AP AC Pro",
        "description": "Enterprise-grade indoor access point",
        "sku": "NET-AP-PRO",
        "category": "networking",
        "price": "189.99",
        "cost_price": "120.00",
        "stock_quantity": 15,
        "low_stock_threshold": 5,
    },
    {
        "name": "RJ45 Connectors Pack (100pcs)",
        "description": "Gold-plated RJ45 connectors for Cat5e/Cat6",
        "sku": "NET-RJ45-100",
        "category": "networking",
        "price": "24.99",
        "cost_price": "12.00",
        "stock_quantity": 8,
        "low_stock_threshold": 15,
    },
    # CCTV
    {
        "name": "Hikvision 4MP IP Dome Camera",
        "description": "Indoor/outdoor dome camera with night vision",
        "sku": "CCTV-DOM-4MP",
        "category": "cctv",
        "price": "129.99",
        "cost_price": "75.00",
        "stock_quantity": 40,
        "low_stock_threshold": 10,
    },
    {
        "name": "8-Channel NVR Recorder",
        "description": "Network video recorder with 2TB storage",
        "sku": "CCTV-NVR-8CH",
        "category": "cctv",
        "price": "349.99",
        "cost_price": "220.00",
        "stock_quantity": 12,
        "low_stock_threshold": 5,
    },
    {
        "name": "POE Switch 4-Port",
        "description": "Power over Ethernet switch for IP cameras",
        "sku": "CCTV-POE-4P",
        "category": "cctv",
        "price": "75.99",
        "cost_price": "42.00",
        "stock_quantity": 3,
        "low_stock_threshold": 8,
    },
    # Intercom
    {
        "name": "Video Door Phone Kit",
        "description": "2-wire video intercom system with 7-inch monitor",
        "sku": "INT-VDP-7",
        "category": "intercom",
        "price": "199.99",
        "cost_price": "110.00",
        "stock_quantity": 18,
        "low_stock_threshold": 5,
    },
    {
        "name": "IP Video Intercom Panel",
        "description": "Smart video intercom with mobile app support",
        "sku": "INT-IP-PAN",
        "category": "intercom",
        "price": "279.99",
        "cost_price": "165.00",
        "stock_quantity": 10,
        "low_stock_threshold": 3,
    },
]

SAMPLE_SERVICES = [
    {
        "name": "Network Installation - Basic",
        "description": "Installation of up to 8 network points including cable routing and termination",
        "price": "299.99",
        "duration": "4-6 hours",
    },
    {
        "name": "CCTV Installation - 4 Cameras",
        "description": "Installation of 4 cameras with NVR setup and mobile app configuration",
        "price": "449.99",
        "duration": "6-8 hours",
    },
    {
        "name": "Intercom System Installation",
        "description": "Video door phone installation including wiring and configuration",
        "price": "199.99",
        "duration": "3-4 hours",
    },
    {
        "name": "Network Maintenance - Monthly",
        "description": "Monthly network health check, updates, and troubleshooting support",
        "price": "149.99",
        "duration": "Monthly",
    },
]
